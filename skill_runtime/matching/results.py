"""Match result types produced by the RuleMatcher.

Results are built per invocation and never persisted.
"""

from dataclasses import dataclass
from typing import Optional

from ..rules.models import SkillRule


@dataclass(frozen=True)
class SkillMatch:
    """A skill selected by prompt and/or file triggers."""

    skill_name: str
    rule: SkillRule
    score: int
    prompt_match: bool = False
    file_match: bool = False


@dataclass(frozen=True)
class ShadowMatch:
    """A non-blocking suggestion from shadow triggers."""

    skill_name: str
    rule: SkillRule
    score: int
    reason: str


@dataclass(frozen=True)
class PreToolMatch:
    """A guardrail matched against a tool call about to run."""

    skill_name: str
    rule: SkillRule
    tool_name: str
    matched_pattern: Optional[str] = None


@dataclass(frozen=True)
class StopMatch:
    """A skill triggered by the conversation's closing summary."""

    skill_name: str
    rule: SkillRule
    matched_keyword: Optional[str] = None
    requires_prompt_evaluation: bool = False


@dataclass(frozen=True)
class ValidationReminder:
    """One failed validation rule with every file that failed it."""

    rule_name: str
    skill_name: str
    failed_files: tuple[str, ...]
    message: str
