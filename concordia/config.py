"""
Concordia — Configuration System

All configuration is Pydantic-validated and loaded from:
1. default.yaml (defaults)
2. Environment variables (overrides)

Consensus parameters are fixed when a ConsensusService is constructed.
Changing them later affects only services built afterwards, and a proposal
keeps the threshold it was created with.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Sub-configs ──────────────────────────────────────────────────


class ConsensusConfig(BaseModel):
    min_agents: int = Field(default=2, ge=1)
    vote_deadline_ms: int = Field(default=300_000, gt=0)
    consensus_threshold: float = Field(default=0.6, gt=0.0, le=1.0)
    # Reserved; the evaluator does not consult it
    require_veto: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


# ─── Root Configuration ──────────────────────────────────────────


class ConcordiaConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONCORDIA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    name: str = "Concordia"

    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "CONCORDIA_MIN_AGENTS": ("consensus", "min_agents", int),
    "CONCORDIA_VOTE_DEADLINE_MS": ("consensus", "vote_deadline_ms", int),
    "CONCORDIA_CONSENSUS_THRESHOLD": ("consensus", "consensus_threshold", float),
    "CONCORDIA_LOG_LEVEL": ("logging", "level", str),
    "CONCORDIA_LOG_FORMAT": ("logging", "format", str),
}


def load_config(config_path: str | Path | None = None) -> ConcordiaConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    overrides: dict[str, Any] = {}
    for env_var, (section, key, cast) in _ENV_OVERRIDES.items():
        if (value := os.environ.get(env_var)) is not None:
            overrides.setdefault(section, {})[key] = cast(value)
    if name := os.environ.get("CONCORDIA_NAME"):
        overrides["name"] = name

    return ConcordiaConfig(**_deep_merge(raw, overrides))
