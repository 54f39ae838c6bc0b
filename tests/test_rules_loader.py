"""Unit tests for ConfigLoader: rule files, defaults, sanitising, skill bodies.

Tests cover:
  CL1: YAML rule file is loaded; JSON sibling used only when YAML is absent
  CL2: Missing or unparsable files yield the default RuleSet
  CL3: Settings are parsed with defaults for missing/invalid values
  CL4: Prototype-style keys are ordinary skill names
  CL5: Invalid enums skip the skill; invalid regexes and globs are dropped
  CL6: Triggers are parsed into trigger-kind records
  CL7: Loading twice yields an identical RuleSet
  CL8: skill_exists() / load_skill_content()
  CL9: validate() reports problems
"""

import pytest

from skill_runtime.rules import (
    ActivationStrategy,
    ConfigLoader,
    Enforcement,
    FileExistsRequirement,
    PatternRequirement,
    Priority,
    RuleSet,
    SkillType,
    TriggerKind,
    load_rule_set,
    parse_rule_set,
)


def _skill(**overrides):
    rule = {
        "type": "domain",
        "enforcement": "suggest",
        "priority": "medium",
        "description": "A skill",
        "promptTriggers": {"keywords": ["api"]},
    }
    rule.update(overrides)
    return rule


# =============================================================================
# CL1: File selection
# =============================================================================

class TestRuleFileSelection:
    def test_loads_yaml(self, project_dir, write_rules):
        write_rules({"version": "2.0", "skills": {"api": _skill()}})
        rule_set = load_rule_set(project_dir)
        assert rule_set.version == "2.0"
        assert list(rule_set.skills) == ["api"]

    def test_json_fallback_when_yaml_absent(self, project_dir, write_rules):
        write_rules({"skills": {"from-json": _skill()}}, fmt="json")
        rule_set = load_rule_set(project_dir)
        assert list(rule_set.skills) == ["from-json"]

    def test_yaml_preferred_over_json(self, project_dir, write_rules):
        write_rules({"skills": {"from-json": _skill()}}, fmt="json")
        write_rules({"skills": {"from-yaml": _skill()}})
        rule_set = load_rule_set(project_dir)
        assert list(rule_set.skills) == ["from-yaml"]

    def test_skill_order_follows_declaration(self, project_dir, write_rules):
        write_rules({"skills": {"zeta": _skill(), "alpha": _skill(), "mid": _skill()}})
        assert list(load_rule_set(project_dir).skills) == ["zeta", "alpha", "mid"]


# =============================================================================
# CL2: Defaults on failure
# =============================================================================

class TestDefaults:
    def test_missing_file_returns_default(self, project_dir):
        rule_set = load_rule_set(project_dir)
        assert rule_set == RuleSet()
        assert rule_set.skills == {}
        assert rule_set.settings.max_suggestions == 3

    def test_missing_project_directory(self, tmp_path):
        rule_set = load_rule_set(tmp_path / "does-not-exist")
        assert rule_set.skills == {}

    def test_unparsable_yaml_returns_default(self, project_dir):
        path = project_dir / ".claude" / "skills" / "skill-rules.yaml"
        path.write_text("skills: [unclosed\n  - : :", encoding="utf-8")
        assert load_rule_set(project_dir) == RuleSet()

    def test_unparsable_yaml_does_not_fall_back_to_json(self, project_dir, write_rules):
        write_rules({"skills": {"from-json": _skill()}}, fmt="json")
        path = project_dir / ".claude" / "skills" / "skill-rules.yaml"
        path.write_text("{not: valid: yaml", encoding="utf-8")
        assert load_rule_set(project_dir).skills == {}

    def test_unparsable_json_returns_default(self, project_dir):
        path = project_dir / ".claude" / "skills" / "skill-rules.json"
        path.write_text("{ this is not json", encoding="utf-8")
        assert load_rule_set(project_dir) == RuleSet()

    def test_non_mapping_document_returns_default(self, project_dir):
        path = project_dir / ".claude" / "skills" / "skill-rules.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        assert load_rule_set(project_dir) == RuleSet()

    def test_empty_document(self, project_dir):
        path = project_dir / ".claude" / "skills" / "skill-rules.yaml"
        path.write_text("", encoding="utf-8")
        assert load_rule_set(project_dir).skills == {}

    def test_null_skills_is_empty_mapping(self):
        rule_set = parse_rule_set({"version": "1.0", "skills": None})
        assert rule_set.skills == {}

    def test_skills_list_is_rejected(self):
        rule_set = parse_rule_set({"skills": ["api", "db"]})
        assert rule_set.skills == {}


# =============================================================================
# CL3: Settings
# =============================================================================

class TestSettings:
    def test_settings_parsed(self):
        rule_set = parse_rule_set({
            "settings": {
                "maxSuggestions": 5,
                "cacheDirectory": "tmp/cache",
                "enableDebugLogging": True,
                "scoring": {"keywordMatchScore": 1, "intentPatternScore": 2,
                            "filePathMatchScore": 3, "fileContentMatchScore": 4},
                "thresholds": {"recentActivationMinutes": 12},
            },
        })
        s = rule_set.settings
        assert s.max_suggestions == 5
        assert s.cache_directory == "tmp/cache"
        assert s.enable_debug_logging is True
        assert (s.scoring.keyword_match_score, s.scoring.intent_pattern_score,
                s.scoring.file_path_match_score, s.scoring.file_content_match_score) == (1, 2, 3, 4)
        assert s.thresholds.recent_activation_minutes == 12

    def test_invalid_values_fall_back(self):
        s = parse_rule_set({"settings": {"maxSuggestions": 0, "scoring": {"keywordMatchScore": "ten"}}}).settings
        assert s.max_suggestions == 3
        assert s.scoring.keyword_match_score == 10

    def test_bool_is_not_an_int(self):
        s = parse_rule_set({"settings": {"maxSuggestions": True}}).settings
        assert s.max_suggestions == 3


# =============================================================================
# CL4: Prototype-style keys
# =============================================================================

class TestReservedKeys:
    @pytest.mark.parametrize("name", ["__proto__", "constructor", "__class__", "__dict__"])
    def test_reserved_key_is_an_ordinary_skill(self, name):
        rule_set = parse_rule_set({"skills": {name: _skill(description="sneaky")}})
        assert list(rule_set.skills) == [name]
        assert rule_set.skills[name].description == "sneaky"
        # Nothing leaked onto shared types
        assert RuleSet().description == ""
        assert type(rule_set.skills) is dict

    def test_proto_in_yaml_file(self, project_dir, write_rules):
        write_rules({"skills": {"__proto__": _skill(), "normal": _skill()}})
        rule_set = load_rule_set(project_dir)
        assert list(rule_set.skills) == ["__proto__", "normal"]
        assert RuleSet().skills == {}


# =============================================================================
# CL5: Invalid values
# =============================================================================

class TestInvalidValues:
    def test_invalid_enforcement_skips_skill(self):
        rule_set = parse_rule_set({"skills": {"bad": _skill(enforcement="shout"), "good": _skill()}})
        assert list(rule_set.skills) == ["good"]

    def test_invalid_priority_skips_skill(self):
        rule_set = parse_rule_set({"skills": {"bad": _skill(priority="urgent")}})
        assert rule_set.skills == {}

    def test_non_mapping_rule_skipped(self):
        rule_set = parse_rule_set({"skills": {"bad": "oops", "good": _skill()}})
        assert list(rule_set.skills) == ["good"]

    def test_invalid_regex_dropped(self):
        rule_set = parse_rule_set({"skills": {"api": _skill(
            promptTriggers={"keywords": [], "intentPatterns": ["(unclosed", "create.*endpoint"]},
        )}})
        trigger = rule_set.skills["api"].prompt_triggers
        assert trigger.intent_patterns == ("create.*endpoint",)

    def test_unknown_strategy_ignored(self):
        rule = parse_rule_set({"skills": {"api": _skill(activationStrategy="sometimes")}}).skills["api"]
        assert rule.activation_strategy is None

    def test_legacy_prompt_enhanced_strategy(self):
        rule = parse_rule_set({"skills": {"api": _skill(activationStrategy="prompt_enhanced")}}).skills["api"]
        assert rule.activation_strategy is ActivationStrategy.NATIVE_ONLY

    def test_validation_rule_with_invalid_regex_dropped(self):
        rule = parse_rule_set({"skills": {"api": _skill(validationRules=[
            {"name": "bad", "condition": {"pathPattern": "[oops"}, "requirement": {"pattern": "x"}},
            {"name": "good", "condition": {"pathPattern": r"\.ts$"}, "requirement": {"pattern": "x"}},
        ])}}).skills["api"]
        assert [v.name for v in rule.validation_rules] == ["good"]

    def test_invalid_shadow_regex_dropped(self):
        rule = parse_rule_set({"skills": {"review": _skill(
            shadowTriggers={"intentPatterns": ["(unclosed", "review.*code"]},
        )}}).skills["review"]
        assert rule.shadow_triggers.intent_patterns == ("review.*code",)

    def test_invalid_content_regex_dropped(self):
        rule = parse_rule_set({"skills": {"db": _skill(
            fileTriggers={"pathPatterns": ["**/*.sql"], "contentPatterns": ["(unclosed", "CREATE TABLE"]},
        )}}).skills["db"]
        assert rule.file_triggers.content_patterns == ("CREATE TABLE",)

    def test_invalid_input_regex_dropped(self):
        rule = parse_rule_set({"skills": {"guard": _skill(
            preToolTriggers={"toolName": "Bash", "inputPatterns": ["(unclosed", "rm -rf"]},
        )}}).skills["guard"]
        assert rule.pre_tool_triggers.input_patterns == ("rm -rf",)

    def test_invalid_glob_dropped(self):
        rule = parse_rule_set({"skills": {"api": _skill(
            fileTriggers={"pathPatterns": ["src/[z-a].ts", "src/**/*.ts"]},
        )}}).skills["api"]
        assert rule.file_triggers.path_patterns == ("src/**/*.ts",)

    def test_only_invalid_globs_drop_file_trigger(self):
        rule = parse_rule_set({"skills": {"api": _skill(
            fileTriggers={"pathPatterns": ["src/[z-a].ts"], "contentPatterns": ["export"]},
        )}}).skills["api"]
        assert rule.file_triggers is None
        assert rule.prompt_triggers is not None

    def test_invalid_glob_reported(self, project_dir, write_rules):
        write_rules({"skills": {"api": _skill(fileTriggers={"pathPatterns": ["src/[z-a].ts"]})}})
        issues = ConfigLoader(project_dir).validate()
        assert any(
            i.location == "skills.api.fileTriggers.pathPatterns" and "invalid glob" in i.message
            for i in issues
        )


# =============================================================================
# CL6: Trigger records
# =============================================================================

class TestTriggerRecords:
    def test_all_trigger_kinds(self):
        rule = parse_rule_set({"skills": {"guard": {
            "type": "guardrail",
            "enforcement": "block",
            "priority": "critical",
            "description": "Guard",
            "promptTriggers": {"keywords": ["deploy", "deploy"], "intentPatterns": ["ship.*prod"]},
            "shadowTriggers": {"keywords": ["release"]},
            "fileTriggers": {"pathPatterns": ["infra/**/*.tf"], "contentPatterns": ["resource"]},
            "preToolTriggers": {"toolName": "Bash", "inputPatterns": ["terraform apply"]},
            "stopTriggers": {"keywords": ["done"], "promptEvaluation": "Was the plan reviewed?"},
            "validationRules": [
                {"name": "has-tests", "condition": {"pathPattern": "src/"},
                 "requirement": {"fileExists": "tests/${filename}.test.ts"}, "reminder": "Add tests"},
                {"name": "has-header", "condition": {"pathPattern": "src/", "pattern": "export"},
                 "requirement": {"pattern": "^// License"}, "reminder": "Add header"},
            ],
            "activationStrategy": "guaranteed",
            "cooldownMinutes": 10,
        }}}).skills["guard"]

        assert rule.skill_type is SkillType.GUARDRAIL
        assert rule.enforcement is Enforcement.BLOCK
        assert rule.priority is Priority.CRITICAL
        assert [t.kind for t in rule.triggers] == list(TriggerKind)
        assert rule.prompt_triggers.keywords == ("deploy",)
        assert rule.shadow_triggers.keywords == ("release",)
        assert rule.file_triggers.path_patterns == ("infra/**/*.tf",)
        assert rule.pre_tool_triggers.tool_name == "Bash"
        assert rule.stop_triggers.prompt_evaluation == "Was the plan reviewed?"
        assert isinstance(rule.validation_rules[0].requirement, FileExistsRequirement)
        assert isinstance(rule.validation_rules[1].requirement, PatternRequirement)
        assert rule.validation_rules[1].condition.pattern == "export"
        assert rule.activation_strategy is ActivationStrategy.GUARANTEED
        assert rule.cooldown_minutes == 10

    def test_empty_triggers_are_dropped(self):
        rule = parse_rule_set({"skills": {"api": _skill(
            promptTriggers={"keywords": []}, fileTriggers={}, preToolTriggers={"inputPatterns": ["x"]},
        )}}).skills["api"]
        assert rule.triggers == ()

    def test_single_string_keyword(self):
        rule = parse_rule_set({"skills": {"api": _skill(promptTriggers={"keywords": "endpoint"})}}).skills["api"]
        assert rule.prompt_triggers.keywords == ("endpoint",)

    def test_missing_enums_use_defaults(self):
        rule = parse_rule_set({"skills": {"bare": {"promptTriggers": {"keywords": ["x"]}}}}).skills["bare"]
        assert rule.skill_type is SkillType.DOMAIN
        assert rule.enforcement is Enforcement.SUGGEST
        assert rule.priority is Priority.MEDIUM


# =============================================================================
# CL7: Idempotent read
# =============================================================================

class TestRoundTrip:
    def test_loading_twice_is_identical(self, project_dir, write_rules):
        write_rules({
            "version": "1.0",
            "settings": {"maxSuggestions": 4},
            "skills": {
                "api": _skill(fileTriggers={"pathPatterns": ["src/**/*.ts"]}),
                "guard": _skill(type="guardrail", enforcement="block",
                                preToolTriggers={"toolName": "Bash", "inputPatterns": ["rm -rf"]}),
            },
        })
        assert load_rule_set(project_dir) == load_rule_set(project_dir)


# =============================================================================
# CL8: Skill bodies
# =============================================================================

class TestSkillContent:
    def test_skill_exists(self, project_dir, write_skill):
        write_skill("api", "# API")
        loader = ConfigLoader(project_dir)
        assert loader.skill_exists("api")
        assert not loader.skill_exists("missing")

    def test_content_strips_frontmatter(self, project_dir, write_skill):
        write_skill("api", "# API Guidelines\n\nUse REST.")
        content = ConfigLoader(project_dir).load_skill_content("api")
        assert content.startswith("# API Guidelines")
        assert "name: api" not in content

    def test_content_without_frontmatter(self, project_dir):
        skill_dir = project_dir / ".claude" / "skills" / "plain"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text("Just text", encoding="utf-8")
        assert ConfigLoader(project_dir).load_skill_content("plain") == "Just text"

    def test_missing_content_is_none(self, project_dir):
        assert ConfigLoader(project_dir).load_skill_content("nope") is None

    @pytest.mark.parametrize("name", ["../secrets", "a/b", "..", ""])
    def test_path_like_names_rejected(self, project_dir, name):
        loader = ConfigLoader(project_dir)
        assert not loader.skill_exists(name)
        assert loader.load_skill_content(name) is None


# =============================================================================
# CL9: validate()
# =============================================================================

class TestValidate:
    def test_clean_config(self, project_dir, write_rules, write_skill):
        write_rules({"skills": {"api": _skill()}})
        write_skill("api", "body")
        assert ConfigLoader(project_dir).validate() == []

    def test_reports_problems(self, project_dir, write_rules, write_skill):
        write_rules({"skills": {
            "api": _skill(promptTriggers={"keywords": ["x"], "intentPatterns": ["(bad"]}),
            "broken": _skill(enforcement="loud"),
        }})
        write_skill("orphan", "body")
        issues = ConfigLoader(project_dir).validate()
        messages = [(i.severity, i.location) for i in issues]

        assert ("error", "skills.broken.enforcement") in messages
        assert ("warning", "skills.api.promptTriggers.intentPatterns") in messages
        assert ("warning", "skills.api") in messages      # no SKILL.md
        assert ("warning", "orphan") in messages          # no rule

    def test_parse_error_reported(self, project_dir):
        (project_dir / ".claude" / "skills" / "skill-rules.yaml").write_text("a: [", encoding="utf-8")
        issues = ConfigLoader(project_dir).validate()
        assert issues[0].severity == "error"
