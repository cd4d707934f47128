from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make main.py and the package importable when running tests from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dw_learner.config import AppConfig  # noqa: E402


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Config with output under tmp_path and no real waiting."""
    return AppConfig.from_dict(
        {
            "feed": {"retry_count": 2, "retry_delay": 0, "timeout_sec": 1},
            "ai": {"token": "test-token", "retry_count": 2, "retry_delay": 0},
            "pipeline": {"limiter": "none"},
            "paths": {
                "public_dir": str(tmp_path / "public"),
                "data_dir": str(tmp_path / "data"),
                "logs_dir": str(tmp_path / "logs"),
            },
        }
    )
