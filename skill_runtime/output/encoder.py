"""Decision encoder: turns matcher output into hook protocol responses.

Two event shapes are produced:

    PreToolUse        {} or {"hookSpecificOutput": {"hookEventName": "PreToolUse",
                                                    "permissionDecision": "allow"|"deny"|"ask",
                                                    "permissionDecisionReason": ...,
                                                    "additionalContext": ...}}
    UserPromptSubmit  {} or {"hookSpecificOutput": {"hookEventName": "UserPromptSubmit",
                                                    "additionalContext": "<text>"}}

Only hookSpecificOutput is ever emitted; the older top-level `decision`,
`reason` and `updatedInput` fields are not.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ..matching.results import PreToolMatch, ShadowMatch, SkillMatch, StopMatch, ValidationReminder
from ..rules.models import Enforcement

ContentLoader = Callable[[str], Optional[str]]

ENGINE_HEADER = "SKILL RELIABILITY ENGINE"


class PermissionDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


# =============================================================================
# Prompt context model
# =============================================================================

@dataclass
class GuaranteedSkillInfo:
    """A skill whose body is injected into the prompt context."""

    name: str
    description: str
    content: str

    @property
    def usage(self) -> str:
        return f"/{self.name}"


@dataclass
class SuggestedSkillInfo:
    name: str
    description: str
    reason: str = "Matched file/prompt triggers"


@dataclass
class SkillContextInfo:
    """Everything rendered into the UserPromptSubmit context string."""

    guaranteed_skills: list[GuaranteedSkillInfo] = field(default_factory=list)
    suggested_skills: list[SuggestedSkillInfo] = field(default_factory=list)
    shadow_suggestions: list[SuggestedSkillInfo] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)
    active_domains: list[str] = field(default_factory=list)

    def has_skills(self) -> bool:
        return bool(self.guaranteed_skills or self.suggested_skills or self.shadow_suggestions)


def build_skill_context(
    guaranteed: Sequence[tuple[SkillMatch, str]],
    suggested: Sequence[SkillMatch],
    shadow: Sequence[ShadowMatch],
    modified_files: Sequence[str] = (),
    active_domains: Sequence[str] = (),
) -> SkillContextInfo:
    """Assemble the prompt context from grouped matches.

    Args:
        guaranteed: (match, loaded content) pairs
        suggested: Matches surfaced as suggestions
        shadow: Shadow trigger matches
        modified_files: Files modified in the session
        active_domains: Domains active in the session
    """
    return SkillContextInfo(
        guaranteed_skills=[
            GuaranteedSkillInfo(name=m.skill_name, description=m.rule.description, content=content)
            for m, content in guaranteed
        ],
        suggested_skills=[
            SuggestedSkillInfo(name=m.skill_name, description=m.rule.description) for m in suggested
        ],
        shadow_suggestions=[
            SuggestedSkillInfo(name=m.skill_name, description=m.rule.description, reason=m.reason)
            for m in shadow
        ],
        modified_files=list(modified_files),
        active_domains=list(active_domains),
    )


def format_skill_context_as_string(context: SkillContextInfo) -> str:
    """Render the prompt context as the additionalContext string."""
    lines = [f"=== {ENGINE_HEADER} ==="]

    if context.guaranteed_skills:
        lines += ["", "## Guaranteed Skills", "These skills were loaded for this prompt. Follow them."]
        for skill in context.guaranteed_skills:
            lines += ["", f"### {skill.name} ({skill.usage})"]
            if skill.description:
                lines.append(skill.description)
            lines += ["", skill.content]

    if context.suggested_skills:
        lines += ["", "## Suggested Skills", "Consider invoking these skills:"]
        for skill in context.suggested_skills:
            lines.append(f"- /{skill.name}: {skill.description} ({skill.reason})")

    if context.shadow_suggestions:
        lines += ["", "## Related Skills", "These skills may also be relevant:"]
        for skill in context.shadow_suggestions:
            lines.append(f"- /{skill.name}: {skill.description} ({skill.reason})")

    if context.modified_files or context.active_domains:
        lines += ["", "## Active Context"]
        if context.modified_files:
            lines.append(f"Modified files: {', '.join(context.modified_files)}")
        if context.active_domains:
            lines.append(f"Active domains: {', '.join(context.active_domains)}")

    return "\n".join(lines)


# =============================================================================
# Output builders
# =============================================================================

def build_user_prompt_submit_output(context: SkillContextInfo) -> dict[str, Any]:
    """UserPromptSubmit response; {} when there is nothing to say."""
    if not context.has_skills():
        return {}
    return {
        "hookSpecificOutput": {
            "hookEventName": "UserPromptSubmit",
            "additionalContext": format_skill_context_as_string(context),
        }
    }


def _pre_tool_output(
    decision: PermissionDecision,
    reason: Optional[str] = None,
    additional_context: Optional[str] = None,
) -> dict[str, Any]:
    specific: dict[str, Any] = {
        "hookEventName": "PreToolUse",
        "permissionDecision": decision.value,
    }
    if reason:
        specific["permissionDecisionReason"] = reason
    if additional_context:
        specific["additionalContext"] = additional_context
    return {"hookSpecificOutput": specific}


def build_pre_tool_use_deny_output(reason: str, additional_context: Optional[str] = None) -> dict[str, Any]:
    return _pre_tool_output(PermissionDecision.DENY, reason, additional_context)


def build_pre_tool_use_ask_output(reason: str, additional_context: Optional[str] = None) -> dict[str, Any]:
    return _pre_tool_output(PermissionDecision.ASK, reason, additional_context)


def build_pre_tool_use_allow_output(additional_context: Optional[str] = None) -> dict[str, Any]:
    """Allow response; {} when there is no context to attach."""
    if not additional_context:
        return {}
    return _pre_tool_output(PermissionDecision.ALLOW, additional_context=additional_context)


# =============================================================================
# Decisions
# =============================================================================

def encode_pre_tool_decision(matches: Sequence[PreToolMatch], load_content: ContentLoader) -> dict[str, Any]:
    """Decide a tool call from its guardrail matches.

    The first blocking match denies the call, carrying the skill body as
    context when one exists. Otherwise warn matches are folded into one
    advisory context and the call is allowed.

    Args:
        matches: Pre-tool matches in config order
        load_content: Returns a skill's body by name, or None

    Returns:
        Hook output dict
    """
    for match in matches:
        if match.rule.enforcement is Enforcement.BLOCK:
            reason = f'Guardrail "{match.skill_name}" triggered: {match.rule.description}'
            content = load_content(match.skill_name)
            context = f"=== GUARDRAIL: {match.skill_name} ===\n{content}" if content else None
            return build_pre_tool_use_deny_output(reason, context)

    warnings = [m for m in matches if m.rule.enforcement is Enforcement.WARN]
    if not warnings:
        return {}

    lines = [
        "=== GUARDRAIL WARNINGS ===",
        "The following guardrails matched but are not blocking:",
    ]
    for match in warnings:
        suffix = f" (pattern: {match.matched_pattern})" if match.matched_pattern else ""
        lines.append(f"- {match.skill_name}: {match.rule.description}{suffix}")
    return build_pre_tool_use_allow_output("\n".join(lines))


def format_stop_report(
    stop_matches: Sequence[StopMatch],
    reminders: Sequence[ValidationReminder],
    load_content: ContentLoader,
) -> str:
    """Plain-text report printed by the stop hook ("" when nothing fired)."""
    if not stop_matches and not reminders:
        return ""

    rule_line = "-" * 40
    lines = [rule_line, "CODE QUALITY SELF-CHECK", rule_line]

    if stop_matches:
        lines += ["", "Completion verification needed:"]
        for match in stop_matches:
            lines += ["", f"  * {match.skill_name}", f"    {match.rule.description}"]
            if match.matched_keyword:
                lines.append(f'    Triggered by: "{match.matched_keyword}"')
            if match.requires_prompt_evaluation:
                lines.append(f"    Check: {match.rule.stop_triggers.prompt_evaluation}")
                content = load_content(match.skill_name)
                if content:
                    lines += ["", f"    {match.skill_name} guidelines:", "", content]

    if reminders:
        lines += ["", "Validation checks found:"]
        current_skill = None
        for reminder in reminders:
            if reminder.skill_name != current_skill:
                current_skill = reminder.skill_name
                lines += ["", f"  {current_skill}:"]
            lines.append(f"    ? {reminder.message}")
            lines.append(f"      Rule: {reminder.rule_name}")
            lines.append(f"      Failed files ({len(reminder.failed_files)}):")
            lines += [f"        - {path}" for path in reminder.failed_files]

    lines += ["", "These are reminders, not blockers.", rule_line]
    return "\n".join(lines)
