"""Hook protocol output: permission decisions and prompt context."""

from .encoder import (
    GuaranteedSkillInfo,
    PermissionDecision,
    SkillContextInfo,
    SuggestedSkillInfo,
    build_pre_tool_use_allow_output,
    build_pre_tool_use_ask_output,
    build_pre_tool_use_deny_output,
    build_skill_context,
    build_user_prompt_submit_output,
    encode_pre_tool_decision,
    format_skill_context_as_string,
    format_stop_report,
)

__all__ = [
    "GuaranteedSkillInfo",
    "PermissionDecision",
    "SkillContextInfo",
    "SuggestedSkillInfo",
    "build_pre_tool_use_allow_output",
    "build_pre_tool_use_ask_output",
    "build_pre_tool_use_deny_output",
    "build_skill_context",
    "build_user_prompt_submit_output",
    "encode_pre_tool_decision",
    "format_skill_context_as_string",
    "format_stop_report",
]
