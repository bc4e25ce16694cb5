"""Login settings loaded from environment variables."""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KEY_BASENAMES = ("id_ecdsa", "id_dsa")
PROVIDER_TIMEOUT_DEFAULT = 300.0
MAX_BASENAME_LENGTH = 255


def _default_ssh_dir() -> Path:
    return Path.home() / ".ssh"


class LoginSettings(BaseSettings):
    """Settings for a single login run."""

    model_config = SettingsConfigDict(env_prefix="FREESSH_")

    ssh_dir: Path = Field(default_factory=_default_ssh_dir)
    key_basenames: list[str] = list(DEFAULT_KEY_BASENAMES)
    principals: list[str] = []
    provider_command: str = ""
    provider_timeout: float = PROVIDER_TIMEOUT_DEFAULT
    gq_sign: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("key_basenames")
    @classmethod
    def _check_basenames(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one key basename is required")
        for name in value:
            validate_key_basename(name)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("ssh_dir")
    @classmethod
    def _expand_ssh_dir(cls, value: Path) -> Path:
        return value.expanduser()


def validate_key_basename(name: str) -> str:
    """Reject names that would escape the SSH directory or clash with .pub files."""
    if not name or len(name) > MAX_BASENAME_LENGTH:
        raise ValueError(f"invalid key basename length: {name!r}")
    if "/" in name or "\\" in name or ".." in name:
        raise ValueError(f"key basename must be a bare file name: {name!r}")
    if name.startswith("."):
        raise ValueError(f"key basename cannot start with a dot: {name!r}")
    if name.startswith("-"):
        raise ValueError(f"key basename cannot start with a dash: {name!r}")
    if name.endswith(".pub"):
        raise ValueError(f"key basename must name the private key: {name!r}")
    return name
