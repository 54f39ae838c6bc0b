"""Data model for the declarative skill rule set.

A rule set is loaded from skill-rules.yaml and maps skill names to
SkillRule records. Each rule carries its triggers as a tuple of
trigger-kind records (one class per kind) instead of one struct with many
optional fields, so the matcher only sees well-formed triggers.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import ClassVar, Optional, Union


# =============================================================================
# Enumerations
# =============================================================================

class SkillType(str, Enum):
    """What a skill is for."""

    DOMAIN = "domain"
    GUARDRAIL = "guardrail"
    WORKFLOW = "workflow"


class Enforcement(str, Enum):
    """Caller-visible effect of a skill activation."""

    SUGGEST = "suggest"
    WARN = "warn"
    BLOCK = "block"
    MANUAL = "manual"


class Priority(str, Enum):
    """Skill priority. Lower rank sorts first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class ActivationStrategy(str, Enum):
    """How a matched skill reaches the assistant on prompt submission."""

    GUARANTEED = "guaranteed"    # content injected into the prompt context
    SUGGESTIVE = "suggestive"    # listed as a suggestion
    NATIVE_ONLY = "native_only"  # left to the host's own skill loading


class TriggerKind(str, Enum):
    """Trigger categories, valued by their config key."""

    PROMPT = "promptTriggers"
    SHADOW = "shadowTriggers"
    FILE = "fileTriggers"
    PRE_TOOL = "preToolTriggers"
    STOP = "stopTriggers"


# =============================================================================
# Trigger records
# =============================================================================

@dataclass(frozen=True)
class PromptTrigger:
    """Keyword and intent-regex triggers evaluated against prompt text."""

    kind: ClassVar[TriggerKind] = TriggerKind.PROMPT

    keywords: tuple[str, ...] = ()
    intent_patterns: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not self.keywords and not self.intent_patterns


@dataclass(frozen=True)
class ShadowTrigger(PromptTrigger):
    """Prompt triggers that only ever produce non-blocking suggestions."""

    kind: ClassVar[TriggerKind] = TriggerKind.SHADOW


@dataclass(frozen=True)
class FileTrigger:
    """Glob path patterns and content regexes evaluated against modified files."""

    kind: ClassVar[TriggerKind] = TriggerKind.FILE

    path_patterns: tuple[str, ...] = ()
    content_patterns: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not self.path_patterns and not self.content_patterns


@dataclass(frozen=True)
class PreToolTrigger:
    """Tool name (exact) plus optional regexes over the tool input."""

    kind: ClassVar[TriggerKind] = TriggerKind.PRE_TOOL

    tool_name: str
    input_patterns: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not self.tool_name


@dataclass(frozen=True)
class StopTrigger:
    """Keywords checked when the conversation stops."""

    kind: ClassVar[TriggerKind] = TriggerKind.STOP

    keywords: tuple[str, ...] = ()
    prompt_evaluation: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.keywords and not self.prompt_evaluation


Trigger = Union[PromptTrigger, ShadowTrigger, FileTrigger, PreToolTrigger, StopTrigger]


# =============================================================================
# Validation rules
# =============================================================================

@dataclass(frozen=True)
class ValidationCondition:
    """Selects candidate files: a path regex and/or a content regex."""

    path_pattern: Optional[str] = None
    pattern: Optional[str] = None


@dataclass(frozen=True)
class PatternRequirement:
    """Candidate content must match this regex."""

    pattern: str


@dataclass(frozen=True)
class FileExistsRequirement:
    """A companion file must exist. ${filename} is the candidate's stem."""

    template: str

    def resolve(self, candidate: str) -> str:
        return self.template.replace("${filename}", PurePosixPath(candidate).stem)


Requirement = Union[PatternRequirement, FileExistsRequirement]


@dataclass(frozen=True)
class ValidationRule:
    """Post-hoc check over modified files for an activated skill."""

    name: str
    condition: ValidationCondition
    requirement: Requirement
    reminder: str = ""


# =============================================================================
# Rules and rule set
# =============================================================================

@dataclass(frozen=True)
class SkillRule:
    """Activation rule for one skill."""

    skill_type: SkillType
    enforcement: Enforcement
    priority: Priority
    description: str = ""
    triggers: tuple[Trigger, ...] = ()
    validation_rules: tuple[ValidationRule, ...] = ()
    activation_strategy: Optional[ActivationStrategy] = None
    cooldown_minutes: Optional[int] = None

    def trigger(self, kind: TriggerKind) -> Optional[Trigger]:
        """Get the trigger record of a kind, or None if the rule has none."""
        for trig in self.triggers:
            if trig.kind is kind:
                return trig
        return None

    @property
    def prompt_triggers(self) -> Optional[PromptTrigger]:
        return self.trigger(TriggerKind.PROMPT)

    @property
    def shadow_triggers(self) -> Optional[ShadowTrigger]:
        return self.trigger(TriggerKind.SHADOW)

    @property
    def file_triggers(self) -> Optional[FileTrigger]:
        return self.trigger(TriggerKind.FILE)

    @property
    def pre_tool_triggers(self) -> Optional[PreToolTrigger]:
        return self.trigger(TriggerKind.PRE_TOOL)

    @property
    def stop_triggers(self) -> Optional[StopTrigger]:
        return self.trigger(TriggerKind.STOP)

    @property
    def effective_strategy(self) -> ActivationStrategy:
        """Activation strategy, defaulting critical blockers to guaranteed."""
        if self.activation_strategy is not None:
            return self.activation_strategy
        if self.enforcement is Enforcement.BLOCK and self.priority is Priority.CRITICAL:
            return ActivationStrategy.GUARANTEED
        return ActivationStrategy.SUGGESTIVE


@dataclass(frozen=True)
class ScoringWeights:
    """Points awarded per independently satisfied trigger clause."""

    keyword_match_score: int = 10
    intent_pattern_score: int = 20
    file_path_match_score: int = 15
    file_content_match_score: int = 15


@dataclass(frozen=True)
class Thresholds:
    recent_activation_minutes: int = 5


@dataclass(frozen=True)
class RuleSettings:
    """Global settings block of the rule set."""

    max_suggestions: int = 3
    cache_directory: str = ".claude/cache"
    enable_debug_logging: bool = False
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass(frozen=True)
class RuleSet:
    """A loaded skill-rules document. `skills` keeps declaration order."""

    version: str = "1.0"
    description: str = ""
    settings: RuleSettings = field(default_factory=RuleSettings)
    skills: dict[str, SkillRule] = field(default_factory=dict)
