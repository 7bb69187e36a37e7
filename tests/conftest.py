# tests/conftest.py

"""Shared pytest fixtures for all price_watcher tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolated_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the default database at a per-test temp file."""
    db_path = tmp_path / "price_watcher.db"
    with patch(
        "src.config.settings.Settings.PRICE_DB_PATH", db_path,
    ):
        yield db_path
