"""UserPromptSubmit hook: surface skills relevant to the submitted prompt.

Pipeline:
    clear current-prompt skills -> match prompt (+ modified files)
    -> shadow match -> drop skills in cooldown -> drop native_only
    -> limit (criticals always kept) -> group by activation strategy
    -> record activations -> encode additionalContext
"""

import logging
from typing import Any

from ..matching.results import SkillMatch
from ..output.encoder import build_skill_context, build_user_prompt_submit_output
from ..rules.models import ActivationStrategy, SkillType
from ..session.state import SessionStateStore
from .context import HookContext

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


def is_cooling_down(store: SessionStateStore, session_id: str, match: SkillMatch, default_window_ms: int) -> bool:
    """True if the skill was activated within its cooldown window.

    A rule's own positive cooldownMinutes overrides the rule set's
    recentActivationMinutes; an unset or zero value uses the default.
    """
    if match.rule.cooldown_minutes:
        window_ms = match.rule.cooldown_minutes * MS_PER_MINUTE
    else:
        window_ms = default_window_ms
    return store.is_recently_activated(session_id, match.skill_name, window_ms)


def handle(ctx: HookContext) -> dict[str, Any]:
    prompt = str(ctx.event.get("prompt") or "")
    store, session_id = ctx.store, ctx.session_id
    rule_settings = ctx.rule_set.settings

    store.clear_current_prompt_skills(session_id)
    modified_files = store.get_modified_files(session_id)
    active_domains = store.get_active_domains(session_id)

    matcher = ctx.matcher()
    matches = matcher.match_prompt(prompt, modified_files)
    shadow_matches = matcher.match_shadow_triggers(prompt)

    default_window_ms = rule_settings.thresholds.recent_activation_minutes * MS_PER_MINUTE
    matches = [m for m in matches if not is_cooling_down(store, session_id, m, default_window_ms)]

    # native_only skills are left to the host and must not take a slot
    matches = [m for m in matches if m.rule.effective_strategy is not ActivationStrategy.NATIVE_ONLY]
    matches = matcher.limit_matches(matches, rule_settings.max_suggestions)

    guaranteed = []
    suggested = []
    for match in matches:
        if match.rule.effective_strategy is ActivationStrategy.GUARANTEED:
            content = ctx.loader.load_skill_content(match.skill_name)
            if not content:
                logger.warning(f"Guaranteed skill {match.skill_name} has no SKILL.md content, skipping")
                continue
            guaranteed.append((match, content))
        else:
            suggested.append(match)

    surfaced = [m for m, _ in guaranteed] + suggested
    for match in surfaced:
        store.record_skill_activation(session_id, match.skill_name)
        if match.rule.skill_type is SkillType.DOMAIN:
            store.add_active_domain(session_id, match.skill_name)

    surfaced_names = {m.skill_name for m in surfaced}
    related = [m for m in shadow_matches if m.skill_name not in surfaced_names]

    logger.debug(
        "Prompt matches: guaranteed=%d suggested=%d related=%d",
        len(guaranteed), len(suggested), len(related),
    )
    context = build_skill_context(guaranteed, suggested, related, modified_files, active_domains)
    return build_user_prompt_submit_output(context)
