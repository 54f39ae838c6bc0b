"""Hook entry points for the host's event protocol.

Events handled:
- prompt (UserPromptSubmit): suggest or inject matching skills
- pre-tool (PreToolUse): allow, warn or deny a tool call
- post-tool (PostToolUse): track modified files
- stop (Stop): completion checks and validation reminders
- session-start (SessionStart): seed state from the working tree
"""

from .context import HookContext, init_hook_context, read_event, tool_input_text
from .runner import EVENT_ALIASES, HOOKS, resolve_hook_name, run_hook

__all__ = [
    "EVENT_ALIASES",
    "HOOKS",
    "HookContext",
    "init_hook_context",
    "read_event",
    "resolve_hook_name",
    "run_hook",
    "tool_input_text",
]
