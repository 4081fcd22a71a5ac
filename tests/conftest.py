"""Shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.pe_images import build_pe


@pytest.fixture
def make_pe(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a PE built by :func:`build_pe` and return its path."""

    def _make(text: bytes, name: str = "test.dll", **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(build_pe(text, **kwargs))
        return path

    return _make
