"""Configuration management for the skill runtime."""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables.

    These cover the process, not the rule set: scoring weights, suggestion
    limits and cooldowns live in skill-rules.yaml and are read by the
    ConfigLoader.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SKILL_RUNTIME_",
        extra="ignore",
        populate_by_name=True,
    )

    # Project location (the host exports CLAUDE_PROJECT_DIR to hooks)
    project_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("CLAUDE_PROJECT_DIR", "SKILL_RUNTIME_PROJECT_DIR"),
    )

    # Session housekeeping
    session_retention_hours: int = Field(default=24)
    cleanup_interval: int = Field(default=50)
    stale_activation_ms: int = Field(default=60 * 60 * 1000)
    orphan_temp_minutes: int = Field(default=5)

    # Matching
    max_content_bytes: int = Field(default=1024 * 1024)

    # Logging
    log_level: str = Field(default="WARNING")
    debug_log: bool = Field(default=False)

    def resolve_project_dir(self, working_directory: Optional[str] = None) -> Path:
        """Resolve the project directory for a hook invocation.

        Args:
            working_directory: Directory reported by the hook event, if any

        Returns:
            CLAUDE_PROJECT_DIR when set, else the event's directory, else cwd
        """
        if self.project_dir:
            return Path(self.project_dir).resolve()
        if working_directory:
            return Path(working_directory).resolve()
        return Path.cwd()


# Global settings instance
settings = Settings()
