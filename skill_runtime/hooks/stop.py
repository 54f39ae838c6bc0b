"""Stop hook: completion checks and validation reminders.

Stop triggers are evaluated against the transcript summary, and the
validation rules of every skill activated in the session are run over the
session's modified files. The result is a plain-text report.
"""

import logging

from ..output.encoder import format_stop_report
from .context import HookContext

logger = logging.getLogger(__name__)


def handle(ctx: HookContext) -> str:
    store, session_id = ctx.store, ctx.session_id
    summary = str(ctx.event.get("transcript_summary") or "")
    modified_files = store.get_modified_files(session_id)
    activated_skills = store.get_activated_skills(session_id)

    matcher = ctx.matcher()
    stop_matches = matcher.match_stop_triggers(summary) if summary else []
    reminders = []
    if modified_files and activated_skills:
        reminders = matcher.apply_validation_rules(modified_files, activated_skills)

    logger.debug(
        "Stop checks: %d stop triggers, %d reminders (%d files, %d skills)",
        len(stop_matches), len(reminders), len(modified_files), len(activated_skills),
    )
    return format_stop_report(stop_matches, reminders, ctx.loader.load_skill_content)
