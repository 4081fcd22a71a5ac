"""Capstone-backed instruction decoding.

The rest of funcdump only depends on the :class:`Decoder` protocol, so tests
can substitute a fake that returns canned :class:`InstructionRecord` lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import capstone

# bits -> capstone (arch, mode)
_X86_MODES: dict[int, tuple[int, int]] = {
    32: (capstone.CS_ARCH_X86, capstone.CS_MODE_32),
    64: (capstone.CS_ARCH_X86, capstone.CS_MODE_64),
}


@dataclass(frozen=True)
class InstructionRecord:
    """One decoded instruction."""

    mnemonic: str
    address: int
    size: int
    op_str: str = ""
    raw: bytes = b""

    def to_dict(self) -> dict[str, object]:
        return {
            "address": f"0x{self.address:08x}",
            "bytes": self.raw.hex(),
            "mnemonic": self.mnemonic,
            "operands": self.op_str,
        }


class Decoder(Protocol):
    def decode(
        self, buffer: bytes, bits: int, base_address: int = 0
    ) -> list[InstructionRecord]: ...


class CapstoneDecoder:
    """Linear-sweep x86 decoder.

    Decoding starts at offset 0 of the buffer and stops at the first byte
    sequence capstone cannot decode, so the result may cover only part of the
    buffer, or nothing at all.
    """

    def decode(self, buffer: bytes, bits: int, base_address: int = 0) -> list[InstructionRecord]:
        try:
            arch, mode = _X86_MODES[bits]
        except KeyError:
            raise ValueError(f"Unsupported bit-width: {bits} (expected 32 or 64)") from None

        md = capstone.Cs(arch, mode)
        md.detail = False
        return [
            InstructionRecord(
                mnemonic=insn.mnemonic,
                address=insn.address,
                size=insn.size,
                op_str=insn.op_str,
                raw=bytes(insn.bytes),
            )
            for insn in md.disasm(buffer, base_address)
        ]
