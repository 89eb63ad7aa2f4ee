"""Application settings powered by Pydantic BaseSettings."""

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.features.pipeline.loader import load_pipeline_options
from src.features.pipeline.options import PipelineOptions


class PipelineSettings(BaseSettings):
    """Environment configuration for the request pipeline.

    Values set here override the same options from ``options_file``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    options_file: Path | None = Field(default=None)
    user_agent: str | None = Field(default=None)
    request_timeout_ms: float | None = Field(default=None)
    no_retry_policy: bool | None = Field(default=None)
    retry_count: int | None = Field(default=None, ge=0, le=20)

    @property
    def log_level_value(self) -> int:
        """Get the numeric logging level, INFO when unknown."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    def to_pipeline_options(self) -> PipelineOptions:
        """Build pipeline options from the file and environment overrides.

        Returns:
            Merged pipeline options.
        """
        base = (
            load_pipeline_options(self.options_file)
            if self.options_file is not None
            else PipelineOptions()
        )
        overrides = {
            "user_agent": self.user_agent,
            "request_timeout_ms": self.request_timeout_ms,
            "no_retry_policy": self.no_retry_policy,
            "retry_count": self.retry_count,
        }
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return base
        return PipelineOptions.model_validate(
            {**base.model_dump(), **updates}
        )


def get_settings() -> PipelineSettings:
    """Get a settings instance."""
    return PipelineSettings()
