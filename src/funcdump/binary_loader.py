"""Binary module loader for funcdump.

Parses PE and ELF files with LIEF and reduces them to the handful of facts
the function extractor needs: bit-width, image base, and the ordered section
table with both virtual and on-disk addressing.

Usage::

    from funcdump.binary_loader import load_module

    module = load_module("path/to/binary.dll")
    print(module.format, module.bits, [s.name for s in module.sections])

Modules are parsed fresh on every call; nothing is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import lief

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Section:
    """Metadata for a single section in a module."""

    name: str
    virtual_address: int  # relative to image base
    raw_size: int  # size on disk
    raw_offset: int  # offset of the raw data in the file
    virtual_size: int = 0  # mapped size (may differ from raw_size)


@dataclass(frozen=True)
class Module:
    """Format-agnostic view of a parsed module."""

    path: Path
    bits: int  # 32 or 64
    format: str = "pe"  # "pe", "elf"
    image_base: int = 0
    sections: tuple[Section, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Format-specific loaders
# ---------------------------------------------------------------------------


def _section_name(raw_name: object) -> str:
    name = (
        raw_name.decode("utf-8", errors="replace")
        if isinstance(raw_name, bytes)
        else str(raw_name)
    )
    return name.rstrip("\x00")


def _load_pe(binary: lief.PE.Binary, path: Path) -> Module:
    """Extract layout information from a PE binary."""
    bits = 64 if binary.optional_header.magic == lief.PE.PE_TYPE.PE32_PLUS else 32

    sections = tuple(
        Section(
            name=_section_name(section.name),
            virtual_address=section.virtual_address,
            raw_size=section.sizeof_raw_data,
            raw_offset=section.pointerto_raw_data,
            virtual_size=section.virtual_size,
        )
        for section in binary.sections
    )

    return Module(
        path=path,
        bits=bits,
        format="pe",
        image_base=binary.optional_header.imagebase,
        sections=sections,
    )


def elf_image_base(binary: lief.ELF.Binary) -> int:
    """Return the lowest ``PT_LOAD`` virtual address, the origin ELF RVAs are measured from."""
    load_segments = [seg for seg in binary.segments if seg.type == lief.ELF.Segment.TYPE.LOAD]
    return min((seg.virtual_address for seg in load_segments), default=0)


def _load_elf(binary: lief.ELF.Binary, path: Path) -> Module:
    """Extract layout information from an ELF binary.

    ELF sections carry absolute addresses; they are rebased onto the lowest
    ``PT_LOAD`` address so that section addresses and symbol RVAs share the
    same origin as they do for PE.
    """
    image_base = elf_image_base(binary)
    bits = 64 if binary.header.identity_class == lief.ELF.Header.CLASS.ELF64 else 32

    sections: list[Section] = []
    for section in binary.sections:
        name = _section_name(section.name)
        if not name:
            continue
        # SHT_NOBITS sections (.bss) have no bytes on disk
        raw_size = 0 if section.type == lief.ELF.Section.TYPE.NOBITS else section.size
        sections.append(
            Section(
                name=name,
                virtual_address=section.virtual_address - image_base,
                raw_size=raw_size,
                raw_offset=section.offset,
                virtual_size=section.size,
            )
        )

    return Module(
        path=path,
        bits=bits,
        format="elf",
        image_base=image_base,
        sections=tuple(sections),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_module(path: Path | str) -> Module:
    """Parse a binary file and return a :class:`Module`.

    Raises:
        FileNotFoundError: If *path* is not an existing regular file.
        ValueError: If the format is unknown or LIEF cannot parse it.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Binary not found: {path}")

    spath = str(path)
    if lief.is_pe(spath):
        binary = lief.PE.parse(spath)
        if binary is None:
            raise ValueError(f"Failed to parse PE: {path}")
        return _load_pe(binary, path)
    if lief.is_elf(spath):
        binary = lief.ELF.parse(spath)
        if binary is None:
            raise ValueError(f"Failed to parse ELF: {path}")
        return _load_elf(binary, path)
    raise ValueError(f"Unsupported binary format: {path}")
