"""Exception and warning types raised by funcdump.

Every hard failure derives from :class:`FuncdumpError` so that callers (and
the CLI) can catch the whole family at once.  The truncated-function
condition is not an error: it is reported through :mod:`warnings` with
:class:`TruncatedFunctionWarning`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from funcdump.symbols import Symbol


class FuncdumpError(Exception):
    """Base class for funcdump failures."""


class AmbiguousOrMissingSymbol(FuncdumpError):
    """A name query matched zero symbols, or more than one."""

    def __init__(self, name: str, matches: Sequence[Symbol] = ()) -> None:
        self.name = name
        self.matches = list(matches)
        if not self.matches:
            msg = f"No symbol matches {name!r}"
        else:
            shown = ", ".join(f"{s.name}@0x{s.rva:x}" for s in self.matches[:8])
            more = f", ... ({len(self.matches)} total)" if len(self.matches) > 8 else ""
            msg = f"Symbol {name!r} is ambiguous: {shown}{more}"
        super().__init__(msg)


class InvalidAddress(FuncdumpError):
    """An RVA does not fall inside the code section, or maps to a negative window."""


class CodeSectionNotFound(FuncdumpError):
    """The module has no section carrying the code-section name."""


class TruncatedRead(FuncdumpError):
    """The file returned fewer bytes than the window asked for."""

    def __init__(self, requested: int, actual: int, offset: int) -> None:
        self.requested = requested
        self.actual = actual
        self.offset = offset
        super().__init__(
            f"Short read at file offset 0x{offset:x}: wanted {requested} bytes, got {actual}"
        )


class UndecodableCode(FuncdumpError):
    """The decoder produced no instructions for the window."""


class TruncatedFunctionWarning(UserWarning):
    """No return instruction was found before the read cap was reached."""
