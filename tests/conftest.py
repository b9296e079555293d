from __future__ import annotations

import logging
from pathlib import Path

import pytest


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    # Keep user config and env out of every test.
    monkeypatch.setenv("CARDOCTOR_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("CARDOCTOR_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("CARDOCTOR_DIGIT3_POLICY", raising=False)
    monkeypatch.delenv("CARDOCTOR_SCAN_DELAY_MS", raising=False)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
