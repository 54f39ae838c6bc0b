"""
Pytest configuration and fixtures for skill runtime tests.

Every test that touches the filesystem builds its own project tree under
tmp_path:

    <project>/.claude/skills/skill-rules.yaml
    <project>/.claude/skills/<name>/SKILL.md
    <project>/.claude/cache/session-<id>.json
"""

import json
from pathlib import Path

import pytest
import yaml

from skill_runtime.config import Settings
from skill_runtime.rules.loader import parse_rule_set


@pytest.fixture
def project_dir(tmp_path):
    """An empty project with a .claude/skills directory."""
    (tmp_path / ".claude" / "skills").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def write_rules(project_dir):
    """Write skill-rules.yaml (or .json) from a dict."""

    def _write(document: dict, fmt: str = "yaml") -> Path:
        skills_dir = project_dir / ".claude" / "skills"
        if fmt == "json":
            path = skills_dir / "skill-rules.json"
            path.write_text(json.dumps(document), encoding="utf-8")
        else:
            path = skills_dir / "skill-rules.yaml"
            path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_skill(project_dir):
    """Write .claude/skills/<name>/SKILL.md with frontmatter."""

    def _write(name: str, body: str, description: str = "") -> Path:
        skill_dir = project_dir / ".claude" / "skills" / name
        skill_dir.mkdir(parents=True, exist_ok=True)
        path = skill_dir / "SKILL.md"
        path.write_text(
            f"---\nname: {name}\ndescription: {description or name}\n---\n\n{body}\n",
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def write_file(project_dir):
    """Write a project file at a relative path."""

    def _write(relative: str, content: str = "") -> Path:
        path = project_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def runtime_settings(project_dir):
    """Runtime settings pinned to the test project."""
    return Settings(project_dir=project_dir, debug_log=False)


def make_rule_set(skills: dict, settings: dict = None):
    """Build a RuleSet from camelCase skill definitions."""
    document = {"version": "1.0", "skills": skills}
    if settings is not None:
        document["settings"] = settings
    return parse_rule_set(document)


# Scoring weights used throughout the matcher tests
SCORING = {
    "keywordMatchScore": 10,
    "intentPatternScore": 20,
    "filePathMatchScore": 15,
    "fileContentMatchScore": 15,
}
