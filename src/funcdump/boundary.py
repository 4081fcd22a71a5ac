"""Function boundary detection on a decoded instruction stream.

The decoded stream has no length of its own; the end of the function is
taken to be the first unconditional return.  When none is found the whole
stream is kept and a :class:`TruncatedFunctionWarning` is issued, because
the read cap was reached before the function ended.

Older tooling used index 0 both as "not found" and as "found at the first
instruction", so a function whose first instruction is ``ret`` came back
as the full stream plus the warning.  :func:`find_return_index` returns
``None`` for "not found" instead; ``legacy_first_return=True`` reproduces
the old output for callers that compare against it.
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence

from funcdump.disasm import InstructionRecord
from funcdump.errors import TruncatedFunctionWarning

RETURN_MNEMONICS = frozenset({"ret", "retn", "retf", "retfq"})


def is_return(insn: InstructionRecord) -> bool:
    """True for an unconditional return, including prefixed forms (``bnd ret``, ``repz ret``)."""
    parts = insn.mnemonic.lower().split()
    return bool(parts) and parts[-1] in RETURN_MNEMONICS


def find_return_index(instructions: Sequence[InstructionRecord]) -> int | None:
    """Return the index of the first return instruction, or ``None`` when there is none."""
    for i, insn in enumerate(instructions):
        if is_return(insn):
            return i
    return None


def trim_to_function(
    instructions: Sequence[InstructionRecord],
    *,
    legacy_first_return: bool = False,
) -> tuple[list[InstructionRecord], bool]:
    """Cut *instructions* after the first return.

    Returns ``(instructions, truncated)``.  ``truncated`` is True when no
    function end was identified; in that case the full stream is returned and
    a :class:`TruncatedFunctionWarning` is emitted.
    """
    end = find_return_index(instructions)
    if end == 0 and legacy_first_return:
        end = None

    if end is None:
        warnings.warn(
            f"No return found in {len(instructions)} decoded instructions; "
            "function may extend past the read window",
            TruncatedFunctionWarning,
            stacklevel=2,
        )
        return list(instructions), True

    return list(instructions[: end + 1]), False
