"""Configuration loader for funcdump.

Reads the optional ``funcdump.toml`` from the current directory or any of
its parents.  Without one, the built-in defaults apply::

    [disasm]
    max_bytes = 512
    code_section = ".text"
    strict_bounds = true
    legacy_first_return = false

Usage::

    from funcdump.config import load_config

    cfg = load_config()
    print(cfg.max_bytes, cfg.code_section)
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from funcdump.address import CODE_SECTION, DEFAULT_MAX_BYTES

CONFIG_FILENAME = "funcdump.toml"


@dataclass(frozen=True)
class FuncdumpConfig:
    """Settings for one extraction."""

    max_bytes: int = DEFAULT_MAX_BYTES
    code_section: str = CODE_SECTION
    strict_bounds: bool = True
    legacy_first_return: bool = False

    # Where the settings came from (None for built-in defaults)
    source: Path | None = None

    def __post_init__(self) -> None:
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be > 0 (got {self.max_bytes})")

    def override(self, **changes: Any) -> FuncdumpConfig:
        """Return a copy with the non-``None`` entries of *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (or cwd) looking for ``funcdump.toml``."""
    candidate = (start or Path.cwd()).resolve()
    while True:
        path = candidate / CONFIG_FILENAME
        if path.is_file():
            return path
        if candidate == candidate.parent:
            return None
        candidate = candidate.parent


def load_config(path: Path | None = None) -> FuncdumpConfig:
    """Load settings from *path*, or from the nearest ``funcdump.toml``.

    Unknown keys are ignored.  Raises ``ValueError`` for values of the wrong
    type and ``tomllib.TOMLDecodeError`` for malformed files.
    """
    if path is None:
        path = find_config()
        if path is None:
            return FuncdumpConfig()

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("disasm", {})
    defaults = FuncdumpConfig()

    max_bytes = section.get("max_bytes", defaults.max_bytes)
    if not isinstance(max_bytes, int) or isinstance(max_bytes, bool):
        raise ValueError(f"{path}: disasm.max_bytes must be an integer")
    code_section = section.get("code_section", defaults.code_section)
    if not isinstance(code_section, str):
        raise ValueError(f"{path}: disasm.code_section must be a string")
    strict_bounds = section.get("strict_bounds", defaults.strict_bounds)
    if not isinstance(strict_bounds, bool):
        raise ValueError(f"{path}: disasm.strict_bounds must be a boolean")
    legacy_first_return = section.get("legacy_first_return", defaults.legacy_first_return)
    if not isinstance(legacy_first_return, bool):
        raise ValueError(f"{path}: disasm.legacy_first_return must be a boolean")

    return FuncdumpConfig(
        max_bytes=max_bytes,
        code_section=code_section,
        strict_bounds=strict_bounds,
        legacy_first_return=legacy_first_return,
        source=Path(path),
    )
