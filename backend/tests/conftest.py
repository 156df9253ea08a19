from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
BACKEND_PATH = ROOT / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from voxlate.config import Settings  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="AIza-test-key",
        GEMINI_BASE_URL="https://gemini.example.test",
        UPLOAD_DIR=tmp_path / "uploads",
        OUTPUT_DIR=tmp_path / "output",
        SOUNDCHECK_DIR=tmp_path / "soundcheck",
    )
