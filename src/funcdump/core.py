"""End-to-end extraction of one function's instructions.

Usage::

    from funcdump.address import ByName
    from funcdump.core import disassemble_function

    result = disassemble_function("target.dll", ByName("CreateWidget"))
    for insn in result.instructions:
        print(f"0x{insn.address:08x}  {insn.mnemonic} {insn.op_str}")

Every call reloads the module; nothing is cached between calls.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from funcdump.address import AddressQuery, ByName, ByteWindow, map_rva, resolve_rva
from funcdump.binary_loader import Module, load_module
from funcdump.boundary import trim_to_function
from funcdump.config import FuncdumpConfig
from funcdump.disasm import CapstoneDecoder, Decoder, InstructionRecord
from funcdump.errors import UndecodableCode
from funcdump.reader import read_window
from funcdump.symbols import BinarySymbolSource, SymbolSource

ModuleLoader = Callable[[Path], Module]


@dataclass(frozen=True)
class FunctionDisassembly:
    """The bounded instruction stream of one function."""

    path: Path
    rva: int
    window: ByteWindow
    instructions: list[InstructionRecord] = field(default_factory=list)
    truncated: bool = False  # no return found inside the window

    @property
    def size(self) -> int:
        return sum(insn.size for insn in self.instructions)

    def to_dict(self) -> dict[str, object]:
        return {
            "binary": str(self.path),
            "rva": f"0x{self.rva:08x}",
            "file_offset": f"0x{self.window.file_offset:x}",
            "window_size": self.window.length,
            "size": self.size,
            "truncated": self.truncated,
            "instruction_count": len(self.instructions),
            "instructions": [insn.to_dict() for insn in self.instructions],
        }


def disassemble_function(
    path: Path | str,
    query: AddressQuery,
    *,
    loader: ModuleLoader = load_module,
    symbols: SymbolSource | None = None,
    decoder: Decoder | None = None,
    config: FuncdumpConfig | None = None,
) -> FunctionDisassembly:
    """Resolve *query* in the binary at *path* and return its instructions.

    *symbols* defaults to the module's own export/symbol tables and
    *decoder* to capstone.  Raises the :mod:`funcdump.errors` exceptions
    unchanged; a missing function end is reported through
    :class:`~funcdump.errors.TruncatedFunctionWarning` and ``truncated``.
    """
    path = Path(path)
    cfg = config or FuncdumpConfig()
    module = loader(path)

    # Only name queries need the symbol tables
    if symbols is None and isinstance(query, ByName):
        symbols = BinarySymbolSource.from_path(path)

    rva = resolve_rva(query, symbols)
    window = map_rva(
        module,
        rva,
        section_name=cfg.code_section,
        max_bytes=cfg.max_bytes,
        strict_bounds=cfg.strict_bounds,
    )
    code = read_window(module.path, window)

    decoded = (decoder or CapstoneDecoder()).decode(code, module.bits, base_address=rva)
    if not decoded:
        raise UndecodableCode(f"No instructions decoded at RVA 0x{rva:x} in {path}")

    instructions, truncated = trim_to_function(
        decoded, legacy_first_return=cfg.legacy_first_return
    )
    return FunctionDisassembly(
        path=path,
        rva=rva,
        window=window,
        instructions=instructions,
        truncated=truncated,
    )
