"""Hook dispatch with fail-open error handling.

A hook must never break the host: any error is logged to stderr, JSON
events answer `{}` (no decision, so nothing is denied) and the exit code
stays 0.
"""

import json
import logging
import sys
from typing import Any, Callable, NamedTuple, Optional, TextIO

from ..config import Settings
from . import post_tool_use, pre_tool_use, session_start, stop, user_prompt_submit
from .context import HookContext, init_hook_context, read_event

logger = logging.getLogger(__name__)


class HookSpec(NamedTuple):
    handler: Callable[[HookContext], Any]
    emits_json: bool


HOOKS: dict[str, HookSpec] = {
    "prompt": HookSpec(user_prompt_submit.handle, True),
    "pre-tool": HookSpec(pre_tool_use.handle, True),
    "post-tool": HookSpec(post_tool_use.handle, False),
    "stop": HookSpec(stop.handle, False),
    "session-start": HookSpec(session_start.handle, False),
}

# Host event names accepted in place of the short names
EVENT_ALIASES = {
    "UserPromptSubmit": "prompt",
    "PreToolUse": "pre-tool",
    "PostToolUse": "post-tool",
    "Stop": "stop",
    "SubagentStop": "stop",
    "SessionStart": "session-start",
}


def resolve_hook_name(name: Optional[str], event: dict[str, Any]) -> Optional[str]:
    """Map a CLI argument or the event's hook_event_name to a hook key."""
    candidate = name or event.get("hook_event_name")
    if not candidate:
        return None
    candidate = EVENT_ALIASES.get(candidate, candidate)
    return candidate if candidate in HOOKS else None


def run_hook(
    name: Optional[str],
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Run one hook event end to end.

    Args:
        name: Hook key or host event name; None reads hook_event_name
        stdin: Stream carrying the JSON event (default: sys.stdin)
        stdout: Stream receiving the hook output (default: sys.stdout)
        settings: Runtime settings override

    Returns:
        Process exit code (always 0)
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    key = resolve_hook_name(name, {}) if name else None
    emits_json = key is not None and HOOKS[key].emits_json
    result: Any = None
    try:
        event = read_event(stdin)
        key = resolve_hook_name(name, event)
        if key is None:
            logger.warning(f"Unknown hook event: {name or event.get('hook_event_name')!r}")
        else:
            emits_json = HOOKS[key].emits_json
            result = HOOKS[key].handler(init_hook_context(event, settings))
    except Exception as e:
        logger.error(f"Hook {name or 'auto'} failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        result = None

    if emits_json:
        stdout.write(json.dumps(result or {}) + "\n")
    elif result:
        stdout.write(f"{result}\n")
    stdout.flush()
    return 0
