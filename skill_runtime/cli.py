"""Command-line interface for the skill runtime."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .hooks.runner import HOOKS, run_hook
from .logging_setup import configure_logging
from .matching.matcher import RuleMatcher
from .rules.loader import ConfigLoader
from .session.state import SessionStateStore

# Set up logging (stderr only: stdout carries hook output)
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# CLI app
app = typer.Typer(
    name="skill-runtime",
    help="SKILL-RUNTIME: rule matching and activation engine for assistant skills",
    add_completion=False,
)
console = Console()

PROJECT_DIR_OPTION = typer.Option(
    None, "--project-dir", "-p", help="Project directory (defaults to CLAUDE_PROJECT_DIR or cwd)"
)


def _project_dir(project_dir: Optional[Path]) -> Path:
    if project_dir is not None:
        return project_dir.resolve()
    return settings.resolve_project_dir()


@app.command()
def hook(
    event: Optional[str] = typer.Argument(
        None, help=f"Hook to run: {', '.join(HOOKS)} (default: read hook_event_name)"
    ),
):
    """Run a hook: read one JSON event from stdin, write the response to stdout."""
    raise typer.Exit(run_hook(event))


@app.command()
def validate(project_dir: Optional[Path] = PROJECT_DIR_OPTION):
    """Check skill-rules and the skills directory for problems."""
    loader = ConfigLoader(_project_dir(project_dir))
    issues = loader.validate()

    if not issues:
        console.print(f"[green]No problems found in {loader.skills_dir}[/green]")
        return

    table = Table(title="Configuration issues")
    table.add_column("Severity", style="bold")
    table.add_column("Location", style="cyan")
    table.add_column("Problem")
    for issue in issues:
        style = "red" if issue.severity == "error" else "yellow"
        table.add_row(f"[{style}]{issue.severity}[/{style}]", issue.location, issue.message)
    console.print(table)

    if any(issue.severity == "error" for issue in issues):
        raise typer.Exit(1)


@app.command()
def skills(project_dir: Optional[Path] = PROJECT_DIR_OPTION):
    """List configured skill rules."""
    loader = ConfigLoader(_project_dir(project_dir))
    rule_set = loader.load()

    if not rule_set.skills:
        console.print(f"[yellow]No skills configured in {loader.skills_dir}[/yellow]")
        return

    table = Table(title=f"Skills ({len(rule_set.skills)})")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Enforcement")
    table.add_column("Priority")
    table.add_column("Strategy")
    table.add_column("Triggers", style="dim")
    table.add_column("SKILL.md")

    for name, rule in rule_set.skills.items():
        kinds = ", ".join(t.kind.value.replace("Triggers", "") for t in rule.triggers)
        if rule.validation_rules:
            kinds = f"{kinds}, validation" if kinds else "validation"
        table.add_row(
            name,
            rule.skill_type.value,
            rule.enforcement.value,
            rule.priority.value,
            rule.effective_strategy.value,
            kinds or "-",
            "[green]yes[/green]" if loader.skill_exists(name) else "[red]no[/red]",
        )
    console.print(table)


@app.command()
def match(
    prompt: str = typer.Argument(..., help="Prompt text to match"),
    files: Optional[list[str]] = typer.Option(None, "--file", "-f", help="Modified file (repeatable)"),
    project_dir: Optional[Path] = PROJECT_DIR_OPTION,
):
    """Show which skills a prompt (and optional files) would activate."""
    root = _project_dir(project_dir)
    rule_set = ConfigLoader(root).load()
    matcher = RuleMatcher(rule_set, root, settings.max_content_bytes)

    matches = matcher.match_prompt(prompt, files or [])
    selected = {m.skill_name for m in matcher.limit_matches(matches, rule_set.settings.max_suggestions)}
    shadow = matcher.match_shadow_triggers(prompt)

    if not matches and not shadow:
        console.print("[yellow]No skills matched.[/yellow]")
        return

    if matches:
        table = Table(title="Prompt matches")
        table.add_column("Skill", style="cyan")
        table.add_column("Priority")
        table.add_column("Score", justify="right")
        table.add_column("Signals")
        table.add_column("Selected")
        for m in matches:
            signals = ", ".join(s for s, hit in (("prompt", m.prompt_match), ("files", m.file_match)) if hit)
            table.add_row(
                m.skill_name,
                m.rule.priority.value,
                str(m.score),
                signals,
                "[green]yes[/green]" if m.skill_name in selected else "[dim]no[/dim]",
            )
        console.print(table)

    if shadow:
        table = Table(title="Related (shadow) matches")
        table.add_column("Skill", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Reason")
        for m in shadow:
            table.add_row(m.skill_name, str(m.score), m.reason)
        console.print(table)


@app.command()
def cleanup(
    max_age_hours: Optional[int] = typer.Option(
        None, "--max-age-hours", help="Retention window (default: SKILL_RUNTIME_SESSION_RETENTION_HOURS)"
    ),
    project_dir: Optional[Path] = PROJECT_DIR_OPTION,
):
    """Remove expired session records from the cache directory."""
    root = _project_dir(project_dir)
    rule_set = ConfigLoader(root).load()
    store = SessionStateStore(root, rule_set.settings.cache_directory)

    hours = max_age_hours if max_age_hours is not None else settings.session_retention_hours
    removed = store.cleanup_old_sessions(hours * 60 * 60 * 1000)
    console.print(Panel(f"Removed {removed} session record(s) from {store.cache_dir}", style="bold blue"))


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
