"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _clear_tablesplit_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove TABLESPLIT_* variables before each test.

    The CLI loads a .env file on import, which would otherwise leak a
    developer's local settings into config assertions.
    """
    for name in list(os.environ):
        if name.startswith("TABLESPLIT_"):
            monkeypatch.delenv(name)
