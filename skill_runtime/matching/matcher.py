"""Rule matcher: evaluates skill triggers against live signals.

Five trigger categories are supported:
- prompt triggers (keywords and intent regexes over the prompt)
- file triggers (glob paths and content regexes over modified files)
- shadow triggers (prompt-shaped, suggestion only, any enforcement)
- pre-tool triggers (tool name plus regexes over the tool input)
- stop triggers (keywords over the closing transcript summary)

plus validation rules run against modified files at stop time.

Matching is pure: the matcher reads files from disk but never touches
session state. Callers decide what to record.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, TypeVar, Union

from ..rules.models import (
    Enforcement,
    FileTrigger,
    PatternRequirement,
    Priority,
    PromptTrigger,
    RuleSet,
    ValidationRule,
)
from ..rules.patterns import (
    compile_pattern,
    glob_match,
    normalize_file_path,
    regex_search,
    resolve_file_path,
)
from .results import PreToolMatch, ShadowMatch, SkillMatch, StopMatch, ValidationReminder

logger = logging.getLogger(__name__)

# Files at or above this size are never scanned for content patterns
MAX_CONTENT_BYTES = 1024 * 1024

M = TypeVar("M", SkillMatch, ShadowMatch, PreToolMatch, StopMatch)


def _by_priority_then_score(matches: list) -> list:
    # sorted() is stable, so equal keys keep config declaration order
    return sorted(matches, key=lambda m: (m.rule.priority.rank, -m.score))


class RuleMatcher:
    """Matches a rule set against prompts, files and tool calls."""

    def __init__(
        self,
        rule_set: Optional[RuleSet],
        project_dir: Union[str, Path],
        max_content_bytes: int = MAX_CONTENT_BYTES,
    ):
        """Initialize the matcher.

        Args:
            rule_set: Loaded rules (None is treated as an empty rule set)
            project_dir: Directory that relative file paths resolve against
            max_content_bytes: Size limit for content scanning
        """
        self.rule_set = rule_set or RuleSet()
        self.skills = self.rule_set.skills or {}
        self.weights = self.rule_set.settings.scoring
        self.project_dir = Path(project_dir)
        self.max_content_bytes = max_content_bytes
        self._content_cache: dict[str, Optional[str]] = {}

    # =========================================================================
    # Prompt and file triggers
    # =========================================================================

    def match_prompt(self, prompt: str, file_paths: Sequence[str] = ()) -> list[SkillMatch]:
        """Match prompt and file triggers for every non-manual skill.

        Args:
            prompt: Submitted prompt text
            file_paths: Files modified in the session (relative or absolute)

        Returns:
            Matches sorted by priority, then score (highest first)
        """
        matches = []
        for name, rule in self.skills.items():
            if rule.enforcement is Enforcement.MANUAL:
                continue

            prompt_score = 0
            if rule.prompt_triggers is not None:
                prompt_score, _ = self._score_prompt(rule.prompt_triggers, prompt)
            file_score = self._score_files(rule.file_triggers, file_paths)

            score = prompt_score + file_score
            if score <= 0:
                continue

            logger.debug(
                "Skill %s matched (prompt=%d, files=%d)", name, prompt_score, file_score
            )
            matches.append(SkillMatch(
                skill_name=name,
                rule=rule,
                score=score,
                prompt_match=prompt_score > 0,
                file_match=file_score > 0,
            ))

        return _by_priority_then_score(matches)

    def match_files(self, file_paths: Sequence[str]) -> list[SkillMatch]:
        """Match only file triggers for every non-manual skill."""
        matches = []
        for name, rule in self.skills.items():
            if rule.enforcement is Enforcement.MANUAL:
                continue
            score = self._score_files(rule.file_triggers, file_paths)
            if score > 0:
                matches.append(SkillMatch(skill_name=name, rule=rule, score=score, file_match=True))
        return _by_priority_then_score(matches)

    def match_shadow_triggers(self, prompt: str) -> list[ShadowMatch]:
        """Match shadow triggers for every skill, whatever its enforcement.

        Returns:
            Matches with a human-readable reason, sorted like match_prompt
        """
        matches = []
        for name, rule in self.skills.items():
            trigger = rule.shadow_triggers
            if trigger is None:
                continue
            score, reason = self._score_prompt(trigger, prompt)
            if score > 0 and reason:
                matches.append(ShadowMatch(skill_name=name, rule=rule, score=score, reason=reason))
        return _by_priority_then_score(matches)

    def _score_prompt(self, trigger: PromptTrigger, prompt: str) -> tuple[int, Optional[str]]:
        """Score keyword and intent clauses; the keyword reason wins."""
        prompt = prompt or ""
        lowered = prompt.lower()
        score = 0
        reason = None

        keyword = next((k for k in trigger.keywords if k.lower() in lowered), None)
        if keyword is not None:
            score += self.weights.keyword_match_score
            reason = f'Detected: "{keyword}"'

        pattern = next(
            (p for p in trigger.intent_patterns if regex_search(p, prompt, ignore_case=True)),
            None,
        )
        if pattern is not None:
            score += self.weights.intent_pattern_score
            if reason is None:
                reason = f"Pattern matched: {pattern}"

        return score, reason

    def _score_files(self, trigger: Optional[FileTrigger], file_paths: Iterable[str]) -> int:
        """Per-skill file score: path weight and content weight at most once each."""
        if trigger is None or not file_paths:
            return 0

        path_hit = False
        content_hit = False
        for file_path in file_paths:
            relative = normalize_file_path(file_path, self.project_dir)
            if trigger.path_patterns and not any(glob_match(g, relative) for g in trigger.path_patterns):
                continue

            if not trigger.content_patterns:
                path_hit = True
                break

            content = self.read_content(file_path)
            if content is None:
                continue
            if any(regex_search(p, content) for p in trigger.content_patterns):
                path_hit = bool(trigger.path_patterns)
                content_hit = True
                break

        score = 0
        if path_hit:
            score += self.weights.file_path_match_score
        if content_hit:
            score += self.weights.file_content_match_score
        return score

    def read_content(self, file_path: str) -> Optional[str]:
        """Read a file for content matching.

        Returns:
            File text, or None if missing, unreadable or too large
        """
        if file_path in self._content_cache:
            return self._content_cache[file_path]

        path = resolve_file_path(file_path, self.project_dir)
        content = None
        try:
            if path.stat().st_size >= self.max_content_bytes:
                logger.debug("Skipping content scan of %s (too large)", file_path)
            else:
                content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read %s: %s", file_path, e)

        self._content_cache[file_path] = content
        return content

    # =========================================================================
    # Tool and stop triggers
    # =========================================================================

    def match_pre_tool_triggers(self, tool_name: str, tool_input_text: str) -> list[PreToolMatch]:
        """Match guardrails against a tool call.

        Args:
            tool_name: Exact tool name (e.g. "Bash", "Write")
            tool_input_text: Tool input flattened to text

        Returns:
            Matches in config declaration order
        """
        matches = []
        for name, rule in self.skills.items():
            trigger = rule.pre_tool_triggers
            if trigger is None or trigger.tool_name != tool_name:
                continue

            matched_pattern = None
            if trigger.input_patterns:
                matched_pattern = next(
                    (p for p in trigger.input_patterns if regex_search(p, tool_input_text or "")),
                    None,
                )
                if matched_pattern is None:
                    continue

            logger.debug("Guardrail %s matched tool %s", name, tool_name)
            matches.append(PreToolMatch(
                skill_name=name,
                rule=rule,
                tool_name=tool_name,
                matched_pattern=matched_pattern,
            ))
        return matches

    def match_stop_triggers(self, prompt: str) -> list[StopMatch]:
        """Match stop triggers against the closing transcript summary.

        A trigger that declares only a promptEvaluation question always
        matches, so the caller can run the follow-up evaluation.
        """
        lowered = (prompt or "").lower()
        matches = []
        for name, rule in self.skills.items():
            trigger = rule.stop_triggers
            if trigger is None:
                continue

            keyword = next((k for k in trigger.keywords if k.lower() in lowered), None)
            if keyword is None and trigger.keywords:
                continue

            matches.append(StopMatch(
                skill_name=name,
                rule=rule,
                matched_keyword=keyword,
                requires_prompt_evaluation=trigger.prompt_evaluation is not None,
            ))
        return matches

    # =========================================================================
    # Validation rules
    # =========================================================================

    def apply_validation_rules(
        self,
        modified_files: Sequence[str],
        active_skill_names: Sequence[str],
    ) -> list[ValidationReminder]:
        """Check modified files against the validation rules of active skills.

        Args:
            modified_files: Files modified in the session
            active_skill_names: Skills activated in the session

        Returns:
            One reminder per failed (rule, skill), critical skills first
        """
        reminders = []
        for skill_name in dict.fromkeys(active_skill_names):
            rule = self.skills.get(skill_name)
            if rule is None:
                continue
            for validation in rule.validation_rules:
                failed = self._failing_files(validation, modified_files)
                if not failed:
                    continue
                reminders.append(ValidationReminder(
                    rule_name=validation.name,
                    skill_name=skill_name,
                    failed_files=tuple(failed),
                    message=validation.reminder or f"Validation rule '{validation.name}' failed",
                ))

        return sorted(reminders, key=lambda r: self.skills[r.skill_name].priority.rank)

    def _failing_files(self, validation: ValidationRule, modified_files: Sequence[str]) -> list[str]:
        condition = validation.condition
        requirement = validation.requirement

        path_re = content_re = required_re = None
        if condition.path_pattern is not None:
            path_re = compile_pattern(condition.path_pattern)
            if path_re is None:
                return []
        if condition.pattern is not None:
            content_re = compile_pattern(condition.pattern)
            if content_re is None:
                return []
        if isinstance(requirement, PatternRequirement):
            required_re = compile_pattern(requirement.pattern)
            if required_re is None:
                return []

        failed = []
        for file_path in dict.fromkeys(modified_files):
            relative = normalize_file_path(file_path, self.project_dir)
            if path_re is not None and not path_re.search(relative):
                continue

            if content_re is not None or required_re is not None:
                content = self.read_content(file_path)
                if content is None:
                    continue
                if content_re is not None and not content_re.search(content):
                    continue
                satisfied = required_re is None or required_re.search(content) is not None
            else:
                satisfied = True

            if satisfied and required_re is None:
                if not resolve_file_path(file_path, self.project_dir).exists():
                    continue
                companion = requirement.resolve(relative)
                satisfied = resolve_file_path(companion, self.project_dir).exists()

            if not satisfied:
                failed.append(relative)
        return failed

    # =========================================================================
    # Selection
    # =========================================================================

    @staticmethod
    def limit_matches(matches: Sequence[M], max_suggestions: int) -> list[M]:
        """Cap matches while always keeping every critical one.

        Args:
            matches: Matches already sorted by priority and score
            max_suggestions: Total slots; criticals may exceed it

        Returns:
            All critical matches, then non-critical ones up to the remaining slots
        """
        critical = [m for m in matches if m.rule.priority is Priority.CRITICAL]
        others = [m for m in matches if m.rule.priority is not Priority.CRITICAL]
        slots = max(0, max_suggestions - len(critical))
        return critical + others[:slots]
