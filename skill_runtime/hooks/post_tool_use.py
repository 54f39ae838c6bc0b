"""PostToolUse hook: track files modified by editing tools.

Every `cleanup_interval` tracked tool uses, expired session records are
removed and stale activation stamps are pruned from this session.
"""

import logging
from typing import Any

from ..rules.patterns import normalize_file_path
from .context import HookContext

logger = logging.getLogger(__name__)

TRACKED_TOOLS = ("Edit", "Write", "MultiEdit")


def extract_file_paths(tool_name: str, tool_input: Any) -> list[str]:
    """File paths touched by an editing tool call."""
    if not isinstance(tool_input, dict):
        return []
    if tool_name == "MultiEdit":
        edits = tool_input.get("edits") or []
        paths = [e.get("file_path") for e in edits if isinstance(e, dict)]
        if isinstance(tool_input.get("file_path"), str):
            paths.insert(0, tool_input["file_path"])
    else:
        paths = [tool_input.get("file_path")]
    return [p for p in dict.fromkeys(paths) if isinstance(p, str) and p]


def handle(ctx: HookContext) -> None:
    tool_name = str(ctx.event.get("tool_name") or "")
    if tool_name not in TRACKED_TOOLS:
        logger.debug("Tool %s does not modify files, skipping", tool_name)
        return None

    store, session_id = ctx.store, ctx.session_id
    for file_path in extract_file_paths(tool_name, ctx.event.get("tool_input")):
        store.add_modified_file(session_id, normalize_file_path(file_path, ctx.project_dir))

    count = store.increment_tool_use_count(session_id)
    interval = ctx.settings.cleanup_interval
    if interval > 0 and count % interval == 0:
        logger.debug("Cleanup triggered at tool use %d", count)
        store.cleanup_old_sessions(
            ctx.settings.session_retention_hours * 60 * 60 * 1000,
            ctx.settings.orphan_temp_minutes * 60 * 1000,
        )
        store.prune_stale_activations(session_id, ctx.settings.stale_activation_ms)
    return None
