"""Address resolution and section mapping.

Turns a function identifier into a bounded byte window in the module file::

    query  = parse_query("CreateWidget")          # or ByAddress(0x1010)
    rva    = resolve_rva(query, symbols)
    window = map_rva(module, rva)                 # ByteWindow(file_offset, length, ...)

The window never reaches past the end of the code section's raw data and is
capped at ``max_bytes`` (512 by default).
"""

from __future__ import annotations

from dataclasses import dataclass

from funcdump.binary_loader import Module, Section
from funcdump.errors import AmbiguousOrMissingSymbol, CodeSectionNotFound, InvalidAddress
from funcdump.symbols import SymbolSource

DEFAULT_MAX_BYTES = 512
CODE_SECTION = ".text"

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ByName:
    name: str


@dataclass(frozen=True)
class ByAddress:
    rva: int


AddressQuery = ByName | ByAddress


def parse_query(text: str) -> AddressQuery:
    """Build a query from user input: ``0x``-prefixed hex is an RVA, anything else a name."""
    text = text.strip()
    if text.lower().startswith("0x"):
        try:
            return ByAddress(int(text, 16))
        except ValueError:
            pass
    return ByName(text)


def resolve_rva(query: AddressQuery, symbols: SymbolSource | None) -> int:
    """Resolve *query* to a single RVA.

    A name must match exactly one symbol, otherwise
    :class:`AmbiguousOrMissingSymbol` is raised.  An address is returned
    unchanged without consulting *symbols*.
    """
    if isinstance(query, ByAddress):
        return query.rva
    if isinstance(query, ByName):
        matches = symbols.lookup(query.name) if symbols is not None else []
        if len(matches) != 1:
            raise AmbiguousOrMissingSymbol(query.name, matches)
        return matches[0].rva
    raise TypeError(f"Unsupported address query: {query!r}")


# ---------------------------------------------------------------------------
# Section mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ByteWindow:
    """A capped slice of the file, computed from an RVA."""

    rva: int
    file_offset: int
    length: int
    bytes_remaining: int  # raw bytes left in the section from rva onwards


def find_code_section(module: Module, name: str = CODE_SECTION) -> Section:
    """Return the first section named *name*."""
    for section in module.sections:
        if section.name == name:
            return section
    raise CodeSectionNotFound(f"No {name!r} section in {module.path}")


def map_rva(
    module: Module,
    rva: int,
    *,
    section_name: str = CODE_SECTION,
    max_bytes: int = DEFAULT_MAX_BYTES,
    strict_bounds: bool = True,
) -> ByteWindow:
    """Compute the file window for *rva* inside the code section.

    With ``strict_bounds`` an RVA outside
    ``[virtual_address, virtual_address + raw_size)`` raises
    :class:`InvalidAddress`.  Without it the arithmetic is returned as-is,
    which can yield a negative offset or length for out-of-range RVAs.
    """
    section = find_code_section(module, section_name)

    if strict_bounds and not (
        section.virtual_address <= rva < section.virtual_address + section.raw_size
    ):
        raise InvalidAddress(
            f"RVA 0x{rva:x} is outside {section.name} "
            f"[0x{section.virtual_address:x}, "
            f"0x{section.virtual_address + section.raw_size:x})"
        )

    file_offset = rva - (section.virtual_address - section.raw_offset)
    bytes_remaining = section.raw_size - (rva - section.virtual_address)
    return ByteWindow(
        rva=rva,
        file_offset=file_offset,
        length=min(max_bytes, bytes_remaining),
        bytes_remaining=bytes_remaining,
    )
