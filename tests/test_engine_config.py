# tests/test_engine_config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from pathlib import Path

import pytest

from pangi.env import load_dotenv_if_present, reset_dotenv_state
from pangi.runtime.engine_config import (
    default_engine_config,
    engine_config_to_json,
    load_engine_config,
    read_engine_config_file,
    validate_engine_config,
)
from pangi.runtime.engine_logging import configure_logging, log_event


def test_defaults_are_valid() -> None:
    cfg = load_engine_config()
    assert cfg == default_engine_config()
    assert cfg.p2p_rate_bps == 100
    assert cfg.exchange_rate_bps == 50
    assert cfg.whale_rate_bps == 200
    assert cfg.max_tax_rate_bps == 1_000
    assert cfg.apy_table == {30: 500, 60: 800, 90: 1_200, 180: 1_800, 365: 2_500}
    assert cfg.early_unlock_penalty_bps == 1_500
    assert cfg.deposit_cooldown_seconds == 60


def test_json_file_overrides_defaults(tmp_path: Path) -> None:
    p = tmp_path / "engine.json"
    p.write_text(json.dumps({"p2p_rate_bps": 150, "apy_table": {"7": 100}, "log_level": "debug"}), encoding="utf-8")

    cfg = read_engine_config_file(str(p))
    assert cfg.p2p_rate_bps == 150
    assert cfg.exchange_rate_bps == 50
    assert cfg.apy_table == {7: 100}
    assert cfg.log_level == "DEBUG"


def test_yaml_file_via_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "engine.yaml"
    p.write_text("whale_rate_bps: 300\nclaim_cooldown_seconds: 60\napy_table:\n  30: 600\n", encoding="utf-8")
    monkeypatch.setenv("PANGI_ENGINE_CONFIG_PATH", str(p))

    cfg = load_engine_config()
    assert cfg.whale_rate_bps == 300
    assert cfg.claim_cooldown_seconds == 60
    assert cfg.apy_table == {30: 600}


def test_explicit_path_wins_over_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    a = tmp_path / "a.json"
    b = tmp_path / "b.json"
    a.write_text(json.dumps({"p2p_rate_bps": 10}), encoding="utf-8")
    b.write_text(json.dumps({"p2p_rate_bps": 20}), encoding="utf-8")
    monkeypatch.setenv("PANGI_ENGINE_CONFIG_PATH", str(a))

    assert load_engine_config(config_path=str(b)).p2p_rate_bps == 20


def test_config_file_must_be_mapping(tmp_path: Path) -> None:
    p = tmp_path / "engine.json"
    p.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_engine_config_file(str(p))


@pytest.mark.parametrize(
    "raw",
    [
        {"p2p_rate_bps": "abc"},
        {"whale_threshold": [1]},
        {"claim_cooldown_seconds": True},
        {"apy_table": [30, 500]},
        {"apy_table": {"thirty": 500}},
    ],
)
def test_non_integer_values_fail_fast(tmp_path: Path, raw: dict) -> None:
    p = tmp_path / "engine.json"
    p.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(ValueError):
        read_engine_config_file(str(p))


@pytest.mark.parametrize(
    "overrides",
    [
        {"p2p_rate_bps": 1_001},
        {"whale_threshold": 0},
        {"min_transfer_amount": 0},
        {"min_stake_amount": 10, "max_stake_amount": 9},
        {"distribution_burn_bps": 8_000, "distribution_vest_bps": 2_500},
        {"min_evolution_cooldown": 100, "max_evolution_cooldown": 99},
        {"early_unlock_penalty_bps": 10_001},
        {"deposit_cooldown_seconds": -1},
        {"apy_table": {}},
        {"apy_table": {0: 500}},
        {"log_level": "LOUD"},
    ],
)
def test_validation_rejects_inconsistent_values(overrides: dict) -> None:
    cfg = replace(default_engine_config(), **overrides)
    with pytest.raises(ValueError):
        validate_engine_config(cfg)


def test_config_json_export_roundtrip(tmp_path: Path) -> None:
    cfg = default_engine_config()
    p = tmp_path / "engine.json"
    p.write_text(json.dumps(engine_config_to_json(cfg)), encoding="utf-8")
    assert read_engine_config_file(str(p)) == cfg


def test_dotenv_supplies_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_file = tmp_path / "engine.json"
    cfg_file.write_text(json.dumps({"exchange_rate_bps": 75}), encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text(f"PANGI_ENGINE_CONFIG_PATH={cfg_file}\n", encoding="utf-8")

    monkeypatch.setenv("PANGI_DOTENV_PATH", str(env_file))
    reset_dotenv_state()
    try:
        assert load_engine_config().exchange_rate_bps == 75
    finally:
        os.environ.pop("PANGI_ENGINE_CONFIG_PATH", None)
        reset_dotenv_state()


def test_dotenv_missing_file_is_noop(tmp_path: Path) -> None:
    reset_dotenv_state()
    assert load_dotenv_if_present(str(tmp_path / "nope.env")) is False


def test_log_event_emits_one_json_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("pangi.test")
    with caplog.at_level(logging.INFO, logger="pangi.test"):
        log_event(logger, "ix_applied", ix_type="STAKE", signer="alice")

    rec = caplog.records[-1]
    payload = json.loads(rec.getMessage())
    assert payload["event"] == "ix_applied"
    assert payload["ix_type"] == "STAKE"
    assert payload["signer"] == "alice"
    assert isinstance(payload["ts_ms"], int)


def test_configure_logging_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    saved = (list(root.handlers), root.level, getattr(root, "_pangi_configured", False))
    try:
        monkeypatch.setenv("PANGI_LOG_LEVEL", "warning")
        configure_logging()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

        configure_logging("DEBUG")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
    finally:
        root.handlers = saved[0]
        root.setLevel(saved[1])
        setattr(root, "_pangi_configured", saved[2])
