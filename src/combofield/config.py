"""Environment-driven settings.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from combofield.domain.exceptions import BindingConfigError


class Settings(BaseModel):
    """Application-wide settings (per-widget behavior lives in BindingConfig)."""

    base_url: str | None = Field(None, description="Lookup endpoint used by the default HTTP resolver")
    timeout: float = Field(10.0, gt=0, description="HTTP timeout in seconds")
    log_level: str = Field("INFO", description="loguru level name")
    log_file: str | None = Field(None, description="Log file path (project root default)")


def load_settings(dotenv: bool = True) -> Settings:
    """Read settings from COMBOFIELD_* environment variables.

    Raises:
        BindingConfigError: If a variable holds an invalid value
    """
    if dotenv:
        load_dotenv()
    try:
        return Settings(
            base_url=os.getenv("COMBOFIELD_BASE_URL") or None,
            timeout=os.getenv("COMBOFIELD_TIMEOUT", "10"),
            log_level=os.getenv("COMBOFIELD_LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("COMBOFIELD_LOG_FILE") or None,
        )
    except ValidationError as e:
        raise BindingConfigError(f"Invalid COMBOFIELD_* environment settings: {e}") from e
