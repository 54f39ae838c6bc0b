"""SessionStart hook: seed session state from the working tree.

Files already modified, staged or untracked when the session starts are
recorded so file triggers work from the first prompt, and a snapshot of
the workspace plus a compact skill index is written to
`<cache>/file_state.json`.
"""

import json
import logging
import subprocess
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..rules.models import RuleSet
from .context import HookContext

logger = logging.getLogger(__name__)

FILE_STATE_NAME = "file_state.json"
GIT_TIMEOUT_SECONDS = 5
MAX_UNTRACKED_FILES = 100


def git_file_list(project_dir: Path, *args: str) -> list[str]:
    """Run a git listing command; any failure yields an empty list."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=project_dir,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {' '.join(args)} failed: {e}")
        return []
    return [line for line in result.stdout.splitlines() if line.strip()]


def build_skill_index(rule_set: RuleSet) -> dict[str, dict[str, Any]]:
    """Summarize each rule for quick inspection."""
    index = {}
    for name, rule in rule_set.skills.items():
        trigger_count = 0
        if rule.prompt_triggers is not None:
            trigger_count += len(rule.prompt_triggers.keywords) + len(rule.prompt_triggers.intent_patterns)
        if rule.file_triggers is not None:
            trigger_count += len(rule.file_triggers.path_patterns) + len(rule.file_triggers.content_patterns)
        index[name] = {
            "name": name,
            "description": rule.description,
            "activationStrategy": rule.effective_strategy.value,
            "hasHooks": rule.pre_tool_triggers is not None or rule.stop_triggers is not None,
            "triggerCount": trigger_count,
        }
    return index


def handle(ctx: HookContext) -> str:
    project_dir = ctx.project_dir
    modified = git_file_list(project_dir, "diff", "--name-only")
    staged = git_file_list(project_dir, "diff", "--cached", "--name-only")
    untracked = git_file_list(project_dir, "ls-files", "--others", "--exclude-standard")[:MAX_UNTRACKED_FILES]

    seeded = list(dict.fromkeys(modified + staged))
    if seeded:
        ctx.store.update(
            ctx.session_id,
            lambda s: replace(s, modified_files=tuple(dict.fromkeys(s.modified_files + tuple(seeded)))),
        )

    skill_index = build_skill_index(ctx.rule_set)
    file_state = {
        "version": "1.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessionId": ctx.session_id,
        "modifiedFiles": modified,
        "stagedFiles": staged,
        "untrackedFiles": untracked,
        "skillIndex": skill_index,
    }
    state_path = ctx.store.cache_dir / FILE_STATE_NAME
    try:
        state_path.parent.mkdir(parents=True, exist_ok=True)
        state_path.write_text(json.dumps(file_state, indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to write {state_path}: {e}")

    lines = ["Skill system initialized", f"   {len(skill_index)} skills loaded"]
    if seeded:
        lines.append(f"   {len(seeded)} modified files tracked")
    return "\n".join(lines)
