from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "pangi" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture(autouse=True)
def _isolated_engine_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep operator config and stray .env files out of unit tests.
    monkeypatch.delenv("PANGI_ENGINE_CONFIG_PATH", raising=False)
    monkeypatch.delenv("PANGI_LOG_LEVEL", raising=False)
    monkeypatch.setenv("PANGI_DOTENV_PATH", str(tmp_path / "absent.env"))
