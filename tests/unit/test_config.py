"""
Unit tests for configuration loading.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from concordia.config import ConcordiaConfig, ConsensusConfig, load_config


def test_defaults():
    config = ConcordiaConfig()
    assert config.name == "Concordia"
    assert config.consensus.min_agents == 2
    assert config.consensus.vote_deadline_ms == 300_000
    assert config.consensus.consensus_threshold == 0.6
    assert config.consensus.require_veto is False
    assert config.logging.format == "console"


@pytest.mark.parametrize(
    "field, value",
    [
        ("min_agents", 0),
        ("vote_deadline_ms", 0),
        ("consensus_threshold", 0.0),
        ("consensus_threshold", 1.5),
    ],
)
def test_consensus_bounds_are_validated(field, value):
    with pytest.raises(ValidationError):
        ConsensusConfig(**{field: value})


def test_threshold_of_one_is_allowed():
    assert ConsensusConfig(consensus_threshold=1.0).consensus_threshold == 1.0


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "concordia.yaml"
    path.write_text(
        "name: Council\n"
        "consensus:\n"
        "  min_agents: 3\n"
        "  consensus_threshold: 0.75\n"
        "logging:\n"
        "  format: json\n"
    )
    config = load_config(path)
    assert config.name == "Council"
    assert config.consensus.min_agents == 3
    assert config.consensus.consensus_threshold == 0.75
    # Unspecified values keep their defaults
    assert config.consensus.vote_deadline_ms == 300_000
    assert config.logging.format == "json"


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")
    assert config.consensus.min_agents == 2


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "concordia.yaml"
    path.write_text("consensus:\n  min_agents: 3\n  vote_deadline_ms: 1000\n")
    monkeypatch.setenv("CONCORDIA_MIN_AGENTS", "5")
    monkeypatch.setenv("CONCORDIA_CONSENSUS_THRESHOLD", "0.9")
    monkeypatch.setenv("CONCORDIA_LOG_LEVEL", "DEBUG")

    config = load_config(path)

    assert config.consensus.min_agents == 5
    assert config.consensus.consensus_threshold == 0.9
    assert config.consensus.vote_deadline_ms == 1000
    assert config.logging.level == "DEBUG"


def test_shipped_defaults_file_matches_models():
    from pathlib import Path

    shipped = Path(__file__).resolve().parents[2] / "config" / "default.yaml"
    config = load_config(shipped)
    assert config.consensus == ConsensusConfig()
