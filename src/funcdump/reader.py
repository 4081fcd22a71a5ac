"""Bounded file reads."""

from __future__ import annotations

from pathlib import Path

from funcdump.address import ByteWindow
from funcdump.errors import InvalidAddress, TruncatedRead


def read_window(path: Path | str, window: ByteWindow) -> bytes:
    """Read exactly ``window.length`` bytes at ``window.file_offset``.

    The file is closed on every exit path.  A short read raises
    :class:`TruncatedRead`.
    """
    if window.file_offset < 0 or window.length < 0:
        raise InvalidAddress(
            f"RVA 0x{window.rva:x} maps to an invalid window "
            f"(offset {window.file_offset}, length {window.length})"
        )

    with open(path, "rb") as f:
        f.seek(window.file_offset)
        data = f.read(window.length)

    if len(data) < window.length:
        raise TruncatedRead(window.length, len(data), window.file_offset)
    return data
