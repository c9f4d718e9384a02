from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .common import Count, EnterpriseNumber, PositiveSeconds, Seconds


DuidTypeName = Literal["LLT", "EN", "LL", "UUID"]
ReconnectMode = Literal["off", "device", "networking"]

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "spoofy" / "config.yaml"


class Settings(BaseModel):
    """User configuration, usually read from ``~/.config/spoofy/config.yaml``."""

    max_attempts: Count = 3
    """Verification reads after a write that reported no error."""

    base_delay: Seconds = 0.5
    """Initial backoff between verification reads, in seconds."""

    timeout: PositiveSeconds = 30.0
    """Upper bound for every backend call, in seconds."""

    state_dir: Path | None = None
    """Directory holding the original identifiers. Defaults to the platform location."""

    history_file: Path = Path.home() / ".spoofy_history.json"
    """JSON change log."""

    history_limit: Count = 100
    """Number of history entries kept."""

    enterprise_number: EnterpriseNumber = 43793
    """Enterprise number used for generated DUID-EN values."""

    en_identifier_length: Annotated[int, Field(ge=1, le=124)] = 8
    """Length of the random DUID-EN identifier, in bytes."""

    default_duid_type: DuidTypeName = "LL"
    """DUID type used when a command does not specify one."""

    local_admin: bool = False
    """Set the locally administered bit on randomized MAC addresses."""

    reconnect: ReconnectMode = "off"
    """NetworkManager reconnection after a MAC change (Linux only)."""

    @field_validator("default_duid_type", mode="before")
    @classmethod
    def _upper_duid_type(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("state_dir", "history_file", mode="after")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None


def load_settings(path: str | Path | None = None) -> Settings:
    """Load YAML -> Settings (Pydantic).

    Without an explicit path the user config is used if it exists, otherwise defaults.
    """

    if path is None:
        if not DEFAULT_CONFIG_PATH.is_file():
            return Settings()
        path = DEFAULT_CONFIG_PATH

    p = Path(path).expanduser()
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise SystemExit(f"[Config Validation Error]\nCannot read {p}: {e.strerror or e}") from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise SystemExit(f"[Config Validation Error]\nInvalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise SystemExit(f"[Config Validation Error]\n{p} must contain a mapping of settings")
    try:
        return Settings(**data)
    except ValidationError as ve:
        raise SystemExit(f"[Config Validation Error]\n{ve}") from ve
