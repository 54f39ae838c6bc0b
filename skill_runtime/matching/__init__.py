"""Trigger matching, scoring and selection."""

from .matcher import MAX_CONTENT_BYTES, RuleMatcher
from .results import PreToolMatch, ShadowMatch, SkillMatch, StopMatch, ValidationReminder

__all__ = [
    "MAX_CONTENT_BYTES",
    "PreToolMatch",
    "RuleMatcher",
    "ShadowMatch",
    "SkillMatch",
    "StopMatch",
    "ValidationReminder",
]
