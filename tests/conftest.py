"""Shared test fixtures for plreview."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from plreview.config import ReviewConfig
from plreview.rules.context import AnalysisContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture()
def ctx() -> AnalysisContext:
    """Provide a fresh analysis context for a file named ``Test.plsql``."""
    return AnalysisContext(file_path="Test.plsql", commit_id="abc123", config=ReviewConfig())


@pytest.fixture()
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes PL/SQL text into ``tmp_path``."""

    def _write(text: str, name: str = "Test.plsql") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
