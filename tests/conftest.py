import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'statewire'
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from statewire.core.config import clear_all_caches  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run every test from an empty project root with no STATEWIRE_* overrides."""
    for key in list(os.environ):
        if key.startswith("STATEWIRE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_all_caches()
    yield tmp_path
    clear_all_caches()


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a project config overlay under ``.statewire/config/``."""

    def _write(content: str, name: str = "project.yaml") -> Path:
        config_dir = tmp_path / ".statewire" / "config"
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / name
        path.write_text(content, encoding="utf-8")
        clear_all_caches()
        return path

    return _write
