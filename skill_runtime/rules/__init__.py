"""Declarative skill rules: data model, loading and pattern helpers.

Usage:
    from skill_runtime.rules import ConfigLoader

    loader = ConfigLoader(project_root)
    rule_set = loader.load()
    for name, rule in rule_set.skills.items():
        print(name, rule.priority.value, rule.enforcement.value)

    body = loader.load_skill_content("api-guidelines")
"""

from .loader import ConfigIssue, ConfigLoader, load_rule_set, parse_rule_set
from .models import (
    ActivationStrategy,
    Enforcement,
    FileExistsRequirement,
    FileTrigger,
    PatternRequirement,
    PreToolTrigger,
    Priority,
    PromptTrigger,
    RuleSet,
    RuleSettings,
    ScoringWeights,
    ShadowTrigger,
    SkillRule,
    SkillType,
    StopTrigger,
    Thresholds,
    TriggerKind,
    ValidationCondition,
    ValidationRule,
)
from .patterns import glob_match, normalize_file_path, resolve_file_path

__all__ = [
    "ActivationStrategy",
    "ConfigIssue",
    "ConfigLoader",
    "Enforcement",
    "FileExistsRequirement",
    "FileTrigger",
    "PatternRequirement",
    "PreToolTrigger",
    "Priority",
    "PromptTrigger",
    "RuleSet",
    "RuleSettings",
    "ScoringWeights",
    "ShadowTrigger",
    "SkillRule",
    "SkillType",
    "StopTrigger",
    "Thresholds",
    "TriggerKind",
    "ValidationCondition",
    "ValidationRule",
    "glob_match",
    "load_rule_set",
    "normalize_file_path",
    "parse_rule_set",
    "resolve_file_path",
]
