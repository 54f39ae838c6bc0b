"""PreToolUse hook: deny or annotate tool calls that trip a guardrail."""

import logging
from typing import Any

from ..output.encoder import encode_pre_tool_decision
from .context import HookContext, tool_input_text

logger = logging.getLogger(__name__)


def handle(ctx: HookContext) -> dict[str, Any]:
    tool_name = str(ctx.event.get("tool_name") or "")
    if not tool_name:
        return {}

    text = tool_input_text(ctx.event.get("tool_input"))
    matches = ctx.matcher().match_pre_tool_triggers(tool_name, text)
    if matches:
        logger.debug("Tool %s matched guardrails: %s", tool_name, [m.skill_name for m in matches])
    return encode_pre_tool_decision(matches, ctx.loader.load_skill_content)
