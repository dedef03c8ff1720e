"""Configuration models and YAML loader for the recruiting sync client."""

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

BASE_URL_ENV_VAR = "RECRUIT_API_BASE_URL"


class ReconcileStrategy(str, Enum):
    """What to do when an optimistic status change is rejected."""

    RESYNC = "resync"
    ROLLBACK = "rollback"


class ApiConfig(BaseModel):
    """Remote API connection settings."""

    base_url: str = ""
    timeout_s: float | None = Field(default=None, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class SessionConfig(BaseModel):
    """Where the signed-in profile is persisted."""

    store_path: str = "data/session.db"
    profile_key: str = "userProfile"

    @field_validator("profile_key")
    @classmethod
    def key_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "profile_key must not be empty"
            raise ValueError(msg)
        return v


class SyncConfig(BaseModel):
    """Bulk fetch and reconciliation behaviour."""

    include_schedules: bool = True
    reconcile_strategy: ReconcileStrategy = ReconcileStrategy.RESYNC
    fetch_error_message: str = "Failed to load data."


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)


def resolve_base_url(api: ApiConfig, environ: Mapping[str, str] | None = None) -> str:
    """Return the API origin: the environment variable wins over the config file.

    An empty result means same-origin (paths are used as-is).
    """
    env = os.environ if environ is None else environ
    override = env.get(BASE_URL_ENV_VAR)
    if override is not None and override.strip():
        return override.strip().rstrip("/")
    return api.base_url
