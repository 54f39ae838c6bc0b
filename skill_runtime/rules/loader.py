"""Config loader for skill-rules documents.

The canonical rule file is `.claude/skills/skill-rules.yaml`; a
`skill-rules.json` sibling is accepted when the YAML file is absent. Loading
never raises: a missing or unparsable document yields the default RuleSet,
and malformed skills, enum values or regexes are dropped with a warning.

Skill bodies live next to the rules as `.claude/skills/<name>/SKILL.md`
(markdown with optional YAML frontmatter).
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import frontmatter
import yaml

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
    Trigger,
    TriggerKind,
    ValidationCondition,
    ValidationRule,
)
from .patterns import is_valid_glob, is_valid_regex

logger = logging.getLogger(__name__)

SKILLS_DIR = Path(".claude") / "skills"
RULES_YAML = "skill-rules.yaml"
RULES_JSON = "skill-rules.json"
SKILL_FILE = "SKILL.md"

# Older configs used this strategy; it behaves like native_only now
_LEGACY_STRATEGIES = {"prompt_enhanced": ActivationStrategy.NATIVE_ONLY}


@dataclass
class ConfigIssue:
    """A problem found while loading the rule set."""

    severity: str  # "error" or "warning"
    location: str
    message: str


class ConfigLoader:
    """Loads the rule set and skill bodies for one project."""

    def __init__(self, project_root: Union[str, Path]):
        """Initialize the config loader.

        Args:
            project_root: Project directory containing `.claude/skills/`
        """
        self.project_root = Path(project_root)
        self.skills_dir = self.project_root / SKILLS_DIR
        self._content_cache: dict[str, Optional[str]] = {}

    @property
    def yaml_path(self) -> Path:
        return self.skills_dir / RULES_YAML

    @property
    def json_path(self) -> Path:
        return self.skills_dir / RULES_JSON

    def load(self) -> RuleSet:
        """Load the rule set, falling back to defaults on any failure.

        Returns:
            Parsed RuleSet, or the default RuleSet (no skills)
        """
        rule_set, issues = self._load_with_issues()
        for issue in issues:
            logger.warning(f"{issue.location}: {issue.message}")
        return rule_set

    def validate(self) -> list[ConfigIssue]:
        """Collect every problem in the rule set and the skills directory.

        Returns:
            Issues in encounter order; an empty list means the config is clean
        """
        rule_set, issues = self._load_with_issues()

        for name in rule_set.skills:
            if not self.skill_exists(name):
                issues.append(ConfigIssue(
                    "warning", f"skills.{name}", f"no {SKILL_FILE} found in {self.skills_dir / name}"
                ))

        if self.skills_dir.is_dir():
            for child in sorted(self.skills_dir.iterdir()):
                if (child / SKILL_FILE).is_file() and child.name not in rule_set.skills:
                    issues.append(ConfigIssue(
                        "warning", child.name, "skill directory has no rule in skill-rules"
                    ))

        return issues

    def skill_exists(self, name: str) -> bool:
        """Check whether a skill has a SKILL.md file."""
        path = self._skill_file(name)
        return path is not None and path.is_file()

    def load_skill_content(self, name: str) -> Optional[str]:
        """Load the markdown body of a skill.

        Args:
            name: Skill name (directory under .claude/skills/)

        Returns:
            Body text with frontmatter stripped, or None if absent
        """
        if name in self._content_cache:
            return self._content_cache[name]

        path = self._skill_file(name)
        content = None
        if path is not None and path.is_file():
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read skill {name}: {e}")
            else:
                try:
                    content = frontmatter.loads(text).content.strip()
                except (yaml.YAMLError, ValueError) as e:
                    logger.debug(f"Invalid frontmatter in {path}, using raw text: {e}")
                    content = text.strip()

        self._content_cache[name] = content
        return content

    def clear_cache(self) -> None:
        """Clear the skill content cache."""
        self._content_cache.clear()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _skill_file(self, name: str) -> Optional[Path]:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            return None
        return self.skills_dir / name / SKILL_FILE

    def _load_with_issues(self) -> tuple[RuleSet, list[ConfigIssue]]:
        issues: list[ConfigIssue] = []
        document = self._read_document(issues)
        if document is None:
            return RuleSet(), issues
        return parse_rule_set(document, issues), issues

    def _read_document(self, issues: list[ConfigIssue]) -> Optional[dict]:
        if self.yaml_path.is_file():
            path = self.yaml_path
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                issues.append(ConfigIssue("error", path.name, f"failed to parse: {e}"))
                return None
        elif self.json_path.is_file():
            path = self.json_path
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                issues.append(ConfigIssue("error", path.name, f"failed to parse: {e}"))
                return None
        else:
            logger.debug(f"No skill rules found in {self.skills_dir}")
            return None

        if data is None:
            return {}
        if not isinstance(data, dict):
            issues.append(ConfigIssue("error", path.name, "top level must be a mapping"))
            return None
        return data


def load_rule_set(project_root: Union[str, Path]) -> RuleSet:
    """Load the rule set of a project (never raises)."""
    return ConfigLoader(project_root).load()


# =============================================================================
# Document parsing
# =============================================================================

def parse_rule_set(document: dict, issues: Optional[list[ConfigIssue]] = None) -> RuleSet:
    """Build a RuleSet from a parsed YAML/JSON document.

    Skill names are copied into a fresh dict keyed by str, so names such as
    `__proto__` or `__class__` are ordinary entries.

    Args:
        document: Top-level mapping
        issues: Optional list that receives ConfigIssue records

    Returns:
        RuleSet with every well-formed skill
    """
    if issues is None:
        issues = []

    raw_skills = document.get("skills")
    skills: dict[str, SkillRule] = {}
    if raw_skills is None:
        pass
    elif not isinstance(raw_skills, dict):
        issues.append(ConfigIssue("error", "skills", "must be a mapping of skill name to rule"))
    else:
        for raw_name, raw_rule in raw_skills.items():
            name = str(raw_name)
            rule = _parse_skill(name, raw_rule, issues)
            if rule is not None:
                skills[name] = rule

    return RuleSet(
        version=str(document.get("version", "1.0")),
        description=str(document.get("description") or ""),
        settings=_parse_settings(document.get("settings"), issues),
        skills=skills,
    )


def _parse_settings(raw: Any, issues: list[ConfigIssue]) -> RuleSettings:
    if raw is None:
        return RuleSettings()
    if not isinstance(raw, dict):
        issues.append(ConfigIssue("warning", "settings", "must be a mapping, using defaults"))
        return RuleSettings()

    defaults = RuleSettings()
    scoring_raw = raw.get("scoring") if isinstance(raw.get("scoring"), dict) else {}
    thresholds_raw = raw.get("thresholds") if isinstance(raw.get("thresholds"), dict) else {}
    weights = ScoringWeights()

    return RuleSettings(
        max_suggestions=_as_int(raw, "maxSuggestions", defaults.max_suggestions, 1, issues),
        cache_directory=str(raw.get("cacheDirectory") or defaults.cache_directory),
        enable_debug_logging=raw.get("enableDebugLogging") is True,
        scoring=ScoringWeights(
            keyword_match_score=_as_int(scoring_raw, "keywordMatchScore", weights.keyword_match_score, 0, issues),
            intent_pattern_score=_as_int(scoring_raw, "intentPatternScore", weights.intent_pattern_score, 0, issues),
            file_path_match_score=_as_int(scoring_raw, "filePathMatchScore", weights.file_path_match_score, 0, issues),
            file_content_match_score=_as_int(
                scoring_raw, "fileContentMatchScore", weights.file_content_match_score, 0, issues
            ),
        ),
        thresholds=Thresholds(
            recent_activation_minutes=_as_int(
                thresholds_raw, "recentActivationMinutes", Thresholds().recent_activation_minutes, 0, issues
            ),
        ),
    )


def _as_int(raw: dict, key: str, default: int, minimum: int, issues: list[ConfigIssue]) -> int:
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        issues.append(ConfigIssue("warning", f"settings.{key}", f"invalid value {value!r}, using {default}"))
        return default
    return value


def _parse_enum(enum_cls, raw: dict, key: str, default, location: str, issues: list[ConfigIssue]):
    value = raw.get(key)
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        issues.append(ConfigIssue("error", f"{location}.{key}", f"invalid value {value!r} (expected one of: {allowed})"))
        return None


def _parse_skill(name: str, raw: Any, issues: list[ConfigIssue]) -> Optional[SkillRule]:
    location = f"skills.{name}"
    if not isinstance(raw, dict):
        issues.append(ConfigIssue("error", location, "rule must be a mapping, skipping skill"))
        return None

    skill_type = _parse_enum(SkillType, raw, "type", SkillType.DOMAIN, location, issues)
    enforcement = _parse_enum(Enforcement, raw, "enforcement", Enforcement.SUGGEST, location, issues)
    priority = _parse_enum(Priority, raw, "priority", Priority.MEDIUM, location, issues)
    if skill_type is None or enforcement is None or priority is None:
        return None

    triggers: list[Trigger] = []
    for kind in TriggerKind:
        trigger = _parse_trigger(kind, raw.get(kind.value), f"{location}.{kind.value}", issues)
        if trigger is not None:
            triggers.append(trigger)

    strategy = None
    raw_strategy = raw.get("activationStrategy")
    if raw_strategy is not None:
        strategy = _LEGACY_STRATEGIES.get(raw_strategy)
        if strategy is None:
            try:
                strategy = ActivationStrategy(raw_strategy)
            except ValueError:
                issues.append(ConfigIssue(
                    "warning", f"{location}.activationStrategy", f"unknown strategy {raw_strategy!r}, ignoring"
                ))

    cooldown = raw.get("cooldownMinutes")
    if cooldown is not None and (isinstance(cooldown, bool) or not isinstance(cooldown, int) or cooldown < 0):
        issues.append(ConfigIssue("warning", f"{location}.cooldownMinutes", f"invalid value {cooldown!r}, ignoring"))
        cooldown = None

    return SkillRule(
        skill_type=skill_type,
        enforcement=enforcement,
        priority=priority,
        description=str(raw.get("description") or ""),
        triggers=tuple(triggers),
        validation_rules=_parse_validation_rules(raw.get("validationRules"), location, issues),
        activation_strategy=strategy,
        cooldown_minutes=cooldown,
    )


def _parse_trigger(kind: TriggerKind, raw: Any, location: str, issues: list[ConfigIssue]) -> Optional[Trigger]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        issues.append(ConfigIssue("warning", location, "must be a mapping, ignoring"))
        return None

    if kind in (TriggerKind.PROMPT, TriggerKind.SHADOW):
        cls = PromptTrigger if kind is TriggerKind.PROMPT else ShadowTrigger
        trigger = cls(
            keywords=_string_set(raw.get("keywords"), f"{location}.keywords", issues),
            intent_patterns=_regex_set(raw.get("intentPatterns"), f"{location}.intentPatterns", issues),
        )
    elif kind is TriggerKind.FILE:
        path_patterns = _glob_set(raw.get("pathPatterns"), f"{location}.pathPatterns", issues)
        if raw.get("pathPatterns") and not path_patterns:
            issues.append(ConfigIssue("warning", f"{location}.pathPatterns", "no usable path patterns, ignoring trigger"))
            return None
        trigger = FileTrigger(
            path_patterns=path_patterns,
            content_patterns=_regex_set(raw.get("contentPatterns"), f"{location}.contentPatterns", issues),
        )
    elif kind is TriggerKind.PRE_TOOL:
        tool_name = raw.get("toolName")
        if not isinstance(tool_name, str) or not tool_name:
            issues.append(ConfigIssue("warning", f"{location}.toolName", "missing tool name, ignoring trigger"))
            return None
        trigger = PreToolTrigger(
            tool_name=tool_name,
            input_patterns=_regex_set(raw.get("inputPatterns"), f"{location}.inputPatterns", issues),
        )
    else:
        evaluation = raw.get("promptEvaluation")
        trigger = StopTrigger(
            keywords=_string_set(raw.get("keywords"), f"{location}.keywords", issues),
            prompt_evaluation=str(evaluation) if evaluation else None,
        )

    if trigger.is_empty():
        return None
    return trigger


def _string_set(raw: Any, location: str, issues: list[ConfigIssue]) -> tuple[str, ...]:
    """Ordered, de-duplicated tuple of non-empty strings."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        issues.append(ConfigIssue("warning", location, "must be a list of strings, ignoring"))
        return ()

    values: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            issues.append(ConfigIssue("warning", location, f"ignoring non-string entry {item!r}"))
            continue
        if item and item not in values:
            values.append(item)
    return tuple(values)


def _regex_set(raw: Any, location: str, issues: list[ConfigIssue]) -> tuple[str, ...]:
    values = []
    for pattern in _string_set(raw, location, issues):
        if is_valid_regex(pattern):
            values.append(pattern)
        else:
            issues.append(ConfigIssue("warning", location, f"invalid regex {pattern!r}, skipping"))
    return tuple(values)


def _glob_set(raw: Any, location: str, issues: list[ConfigIssue]) -> tuple[str, ...]:
    values = []
    for glob in _string_set(raw, location, issues):
        if is_valid_glob(glob):
            values.append(glob)
        else:
            issues.append(ConfigIssue("warning", location, f"invalid glob {glob!r}, skipping"))
    return tuple(values)


def _parse_validation_rules(raw: Any, location: str, issues: list[ConfigIssue]) -> tuple[ValidationRule, ...]:
    if raw is None:
        return ()
    location = f"{location}.validationRules"
    if not isinstance(raw, list):
        issues.append(ConfigIssue("warning", location, "must be a list, ignoring"))
        return ()

    rules = []
    for index, entry in enumerate(raw):
        where = f"{location}[{index}]"
        if not isinstance(entry, dict):
            issues.append(ConfigIssue("warning", where, "must be a mapping, skipping"))
            continue

        condition_raw = entry.get("condition") if isinstance(entry.get("condition"), dict) else {}
        requirement_raw = entry.get("requirement") if isinstance(entry.get("requirement"), dict) else {}

        condition = ValidationCondition(
            path_pattern=_optional_str(condition_raw.get("pathPattern")),
            pattern=_optional_str(condition_raw.get("pattern")),
        )
        bad = [p for p in (condition.path_pattern, condition.pattern) if p is not None and not is_valid_regex(p)]

        if requirement_raw.get("fileExists"):
            requirement = FileExistsRequirement(template=str(requirement_raw["fileExists"]))
        elif requirement_raw.get("pattern"):
            requirement = PatternRequirement(pattern=str(requirement_raw["pattern"]))
            if not is_valid_regex(requirement.pattern):
                bad.append(requirement.pattern)
        else:
            issues.append(ConfigIssue("warning", where, "requirement needs `pattern` or `fileExists`, skipping"))
            continue

        if bad:
            issues.append(ConfigIssue("warning", where, f"invalid regex {bad[0]!r}, skipping rule"))
            continue

        rules.append(ValidationRule(
            name=str(entry.get("name") or f"rule-{index + 1}"),
            condition=condition,
            requirement=requirement,
            reminder=str(entry.get("reminder") or ""),
        ))
    return tuple(rules)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
