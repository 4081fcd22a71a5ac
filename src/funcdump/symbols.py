"""Symbol sources: name → RVA lookups.

Two sources are provided:

* :class:`BinarySymbolSource` reads the module's own tables through LIEF
  (PE export directory, ELF ``FUNC`` symbols).
* :class:`FunctionListSource` reads a text function list, one
  ``0x<rva> <size> <name>`` entry per line.

Both accept either an exact name or an ``fnmatch``-style mask
(``*``, ``?``, ``[...]``) and return every matching :class:`Symbol`.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import lief

from funcdump.binary_loader import elf_image_base


@dataclass(frozen=True)
class Symbol:
    """A named code address, relative to the module's image base."""

    name: str
    rva: int


class SymbolSource(Protocol):
    def lookup(self, pattern: str) -> list[Symbol]: ...


_MASK_CHARS = frozenset("*?[")


def _is_mask(pattern: str) -> bool:
    return any(ch in _MASK_CHARS for ch in pattern)


def match_symbols(symbols: Iterable[Symbol], pattern: str) -> list[Symbol]:
    """Return the symbols whose name equals *pattern*, or matches it as a mask."""
    if _is_mask(pattern):
        return [s for s in symbols if fnmatch.fnmatchcase(s.name, pattern)]
    return [s for s in symbols if s.name == pattern]


def _dedupe(symbols: Iterable[Symbol]) -> list[Symbol]:
    # .symtab and .dynsym commonly list the same function twice
    seen: set[Symbol] = set()
    out: list[Symbol] = []
    for sym in symbols:
        if sym not in seen:
            seen.add(sym)
            out.append(sym)
    return out


# ---------------------------------------------------------------------------
# LIEF-backed source
# ---------------------------------------------------------------------------


def _pe_symbols(binary: lief.PE.Binary) -> list[Symbol]:
    if not binary.has_exports:
        return []
    out: list[Symbol] = []
    for entry in binary.get_export().entries:
        # Ordinal-only and forwarded exports have no code in this module
        if not entry.name or entry.is_extern:
            continue
        out.append(Symbol(name=str(entry.name), rva=entry.address))
    return out


def _elf_symbols(binary: lief.ELF.Binary) -> list[Symbol]:
    image_base = elf_image_base(binary)
    out: list[Symbol] = []
    for sym in binary.symbols:
        if sym.type != lief.ELF.Symbol.TYPE.FUNC or not sym.name or sym.value == 0:
            continue
        out.append(Symbol(name=str(sym.name), rva=sym.value - image_base))
    return out


class BinarySymbolSource:
    """Symbols read from the module file itself."""

    def __init__(self, symbols: Iterable[Symbol]) -> None:
        self.symbols = _dedupe(symbols)

    @classmethod
    def from_path(cls, path: Path | str) -> BinarySymbolSource:
        """Parse *path* with LIEF and collect its exported/function symbols."""
        spath = str(path)
        binary = lief.parse(spath)
        if binary is None:
            raise ValueError(f"Failed to parse binary (unknown format): {path}")
        if isinstance(binary, lief.PE.Binary):
            return cls(_pe_symbols(binary))
        if isinstance(binary, lief.ELF.Binary):
            return cls(_elf_symbols(binary))
        raise ValueError(f"Unsupported binary format: {path}")

    def lookup(self, pattern: str) -> list[Symbol]:
        return match_symbols(self.symbols, pattern)


# ---------------------------------------------------------------------------
# Text function list
# ---------------------------------------------------------------------------

_FUNC_LINE_RE = re.compile(r"\s*(0x[0-9a-fA-F]+)\s+(\d+)\s+(\S+)")


def parse_function_list(text: str) -> list[Symbol]:
    """Parse ``0x<rva> <size> <name>`` lines; blank lines and ``#`` comments are skipped."""
    symbols: list[Symbol] = []
    for line in text.splitlines():
        if line.lstrip().startswith("#"):
            continue
        m = _FUNC_LINE_RE.match(line)
        if m:
            symbols.append(Symbol(name=m.group(3), rva=int(m.group(1), 16)))
    return symbols


class FunctionListSource:
    """Symbols read from a function-list text file."""

    def __init__(self, symbols: Iterable[Symbol]) -> None:
        self.symbols = list(symbols)

    @classmethod
    def from_path(cls, path: Path | str) -> FunctionListSource:
        return cls(parse_function_list(Path(path).read_text(encoding="utf-8")))

    def lookup(self, pattern: str) -> list[Symbol]:
        return match_symbols(self.symbols, pattern)
