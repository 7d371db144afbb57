"""Runtime configuration loaded from the environment."""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "TASKWARRIOR_MCP_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class TaskWarriorConfig(BaseModel):
    """Settings shared by the MCP server and the CLI."""

    executable: str = Field("task", min_length=1, description="Taskwarrior executable name or path")
    timeout_seconds: float = Field(30.0, gt=0, description="Upper bound for one task invocation")
    data_location: Optional[Path] = Field(None, description="Overrides rc.data.location when set")
    taskrc: Optional[Path] = Field(None, description="Exported as TASKRC when set")
    log_level: str = Field("INFO", description="Logging level for stderr output")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "TaskWarriorConfig":
        """
        Build configuration from ``TASKWARRIOR_MCP_*`` variables.

        Keyword overrides that are not None win over the environment, which
        is how CLI options are applied.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field_name, env_name in (
            ("executable", "TASK_BIN"),
            ("timeout_seconds", "TIMEOUT"),
            ("data_location", "DATA_DIR"),
            ("taskrc", "TASKRC"),
            ("log_level", "LOG_LEVEL"),
        ):
            raw = environ.get(ENV_PREFIX + env_name)
            if raw:
                values[field_name] = raw
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the MCP stream."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
