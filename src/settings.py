# settings.py
# Runtime configuration for the API and the CLI, read from BLOCKER2048_* variables.

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "BLOCKER2048_"


class ServiceSettings(BaseModel):
    """Settings shared by the HTTP API and the CLI driver."""
    rate_limit: str = Field(
        default="100/minute",
        description="slowapi rate limit applied to every game endpoint.",
    )
    data_dir: str = Field(
        default="~/.blocker2048",
        description="Directory where the CLI keeps saved games and statistics.",
    )
    log_level: str = Field(default="WARNING", description="Root logging level.")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ServiceSettings:
    """Builds settings from the environment, falling back to defaults for unset variables."""
    environ = os.environ if environ is None else environ
    values = {}
    for name in ServiceSettings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    return ServiceSettings(**values)
