"""Tests for funcdump.core — the end-to-end pipeline."""

import warnings
from pathlib import Path

import pytest

from funcdump.address import ByAddress, ByName
from funcdump.binary_loader import Module, Section
from funcdump.config import FuncdumpConfig
from funcdump.core import disassemble_function
from funcdump.disasm import InstructionRecord
from funcdump.errors import (
    AmbiguousOrMissingSymbol,
    CodeSectionNotFound,
    InvalidAddress,
    TruncatedFunctionWarning,
    TruncatedRead,
    UndecodableCode,
)
from funcdump.symbols import FunctionListSource, Symbol
from tests.host_binaries import INTERPRETER, requires_elf_interpreter, unique_text_symbol
from tests.pe_images import PROLOGUE_32, PROLOGUE_64, TEXT_RVA

# .text layout used by the PE-backed tests:
#   0x1000  push ebp / mov / xor / pop / ret, then int3 padding
#   0x1010  ret / nop / nop
#   0x1020  zeros up to the end of the section (no return)
TEXT_32 = PROLOGUE_32 + b"\xcc" * 9 + b"\xc3\x90\x90"


# -------------------------------------------------------------------------
# Fakes
# -------------------------------------------------------------------------


class FakeDecoder:
    def __init__(self, mnemonics: list[str]) -> None:
        self.mnemonics = mnemonics
        self.calls: list[tuple[bytes, int, int]] = []

    def decode(self, buffer: bytes, bits: int, base_address: int = 0) -> list[InstructionRecord]:
        self.calls.append((buffer, bits, base_address))
        return [
            InstructionRecord(mnemonic=m, address=base_address + i, size=1)
            for i, m in enumerate(self.mnemonics)
        ]


def _fake_module(path: Path, raw_size: int = 0x200) -> Module:
    text = Section(name=".text", virtual_address=0x1000, raw_size=raw_size, raw_offset=0x400)
    return Module(path=path, bits=32, sections=(text,))


@pytest.fixture
def image(tmp_path: Path) -> Path:
    f = tmp_path / "image.bin"
    f.write_bytes(b"\x00" * 0x400 + bytes(range(256)) * 2)
    return f


# -------------------------------------------------------------------------
# With injected collaborators
# -------------------------------------------------------------------------


class TestWithFakes:
    def test_by_name(self, image: Path) -> None:
        decoder = FakeDecoder(["mov", "push", "ret", "nop", "nop"])
        result = disassemble_function(
            image,
            ByName("Foo"),
            loader=_fake_module,
            symbols=FunctionListSource([Symbol("Foo", 0x1010)]),
            decoder=decoder,
        )
        assert result.rva == 0x1010
        assert result.window.file_offset == 0x410
        assert result.window.length == 0x1F0
        assert [i.mnemonic for i in result.instructions] == ["mov", "push", "ret"]
        assert result.truncated is False

        buffer, bits, base = decoder.calls[0]
        assert buffer == (bytes(range(256)) * 2)[0x10:]
        assert bits == 32
        assert base == 0x1010

    def test_no_return_warns(self, image: Path) -> None:
        with pytest.warns(TruncatedFunctionWarning):
            result = disassemble_function(
                image, ByAddress(0x1000), loader=_fake_module, decoder=FakeDecoder(["mov", "push", "nop"])
            )
        assert len(result.instructions) == 3
        assert result.truncated is True

    def test_legacy_first_return(self, image: Path) -> None:
        cfg = FuncdumpConfig(legacy_first_return=True)
        with pytest.warns(TruncatedFunctionWarning):
            result = disassemble_function(
                image,
                ByAddress(0x1000),
                loader=_fake_module,
                decoder=FakeDecoder(["ret", "nop", "nop"]),
                config=cfg,
            )
        assert [i.mnemonic for i in result.instructions] == ["ret", "nop", "nop"]
        assert result.truncated is True

    def test_undecodable(self, image: Path) -> None:
        with pytest.raises(UndecodableCode):
            disassemble_function(image, ByAddress(0x1000), loader=_fake_module, decoder=FakeDecoder([]))

    def test_ambiguous_symbol(self, image: Path) -> None:
        symbols = FunctionListSource([Symbol("Foo", 0x1000), Symbol("Foo", 0x1010)])
        with pytest.raises(AmbiguousOrMissingSymbol):
            disassemble_function(
                image, ByName("Foo"), loader=_fake_module, symbols=symbols, decoder=FakeDecoder(["ret"])
            )

    def test_address_outside_section(self, image: Path) -> None:
        with pytest.raises(InvalidAddress):
            disassemble_function(
                image, ByAddress(0x3000), loader=_fake_module, decoder=FakeDecoder(["ret"])
            )

    def test_unguarded_address_outside_section(self, image: Path) -> None:
        cfg = FuncdumpConfig(strict_bounds=False)
        with pytest.raises(InvalidAddress, match="invalid window"):
            disassemble_function(
                image, ByAddress(0x3000), loader=_fake_module, decoder=FakeDecoder(["ret"]), config=cfg
            )

    def test_short_file(self, tmp_path: Path) -> None:
        f = tmp_path / "short.bin"
        f.write_bytes(b"\x00" * 0x480)
        with pytest.raises(TruncatedRead):
            disassemble_function(f, ByAddress(0x1000), loader=_fake_module, decoder=FakeDecoder(["ret"]))

    def test_custom_section_missing(self, image: Path) -> None:
        with pytest.raises(CodeSectionNotFound):
            disassemble_function(
                image,
                ByAddress(0x1000),
                loader=_fake_module,
                decoder=FakeDecoder(["ret"]),
                config=FuncdumpConfig(code_section="CODE"),
            )

    def test_max_bytes(self, image: Path) -> None:
        decoder = FakeDecoder(["ret"])
        result = disassemble_function(
            image, ByAddress(0x1000), loader=_fake_module, decoder=decoder, config=FuncdumpConfig(max_bytes=8)
        )
        assert result.window.length == 8
        assert len(decoder.calls[0][0]) == 8


# -------------------------------------------------------------------------
# Against a real PE with capstone
# -------------------------------------------------------------------------


class TestWithPe:
    def test_exported_function(self, make_pe) -> None:
        path = make_pe(TEXT_32, exports={"CreateWidget": 0x1000, "Nothing": 0x1010})
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = disassemble_function(path, ByName("CreateWidget"))
        assert [i.mnemonic for i in result.instructions] == ["push", "mov", "xor", "pop", "ret"]
        assert result.instructions[0].address == 0x1000
        assert result.size == len(PROLOGUE_32)
        assert result.window.file_offset == 0x200
        assert result.truncated is False

    def test_first_instruction_return(self, make_pe) -> None:
        path = make_pe(TEXT_32)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = disassemble_function(path, ByAddress(0x1010))
        assert [i.mnemonic for i in result.instructions] == ["ret"]
        assert result.truncated is False

    def test_runs_to_window_end(self, make_pe) -> None:
        path = make_pe(TEXT_32)
        with pytest.warns(TruncatedFunctionWarning):
            result = disassemble_function(path, ByAddress(0x1020))
        assert result.truncated is True
        assert result.window.length == 0x1E0
        assert result.size == 0x1E0
        assert {i.mnemonic for i in result.instructions} == {"add"}

    def test_pe32_plus(self, make_pe) -> None:
        path = make_pe(PROLOGUE_64, bits=64, exports={"f": TEXT_RVA})
        result = disassemble_function(path, ByName("f"))
        assert [i.op_str for i in result.instructions[:2]] == ["rbp", "rbp, rsp"]

    def test_missing_export(self, make_pe) -> None:
        path = make_pe(TEXT_32, exports={"CreateWidget": 0x1000})
        with pytest.raises(AmbiguousOrMissingSymbol):
            disassemble_function(path, ByName("DestroyWidget"))

    def test_deterministic(self, make_pe) -> None:
        path = make_pe(TEXT_32, exports={"CreateWidget": 0x1000})
        first = disassemble_function(path, ByName("CreateWidget"))
        second = disassemble_function(path, ByName("CreateWidget"))
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_to_dict(self, make_pe) -> None:
        result = disassemble_function(make_pe(TEXT_32), ByAddress(0x1000))
        data = result.to_dict()
        assert data["rva"] == "0x00001000"
        assert data["file_offset"] == "0x200"
        assert data["window_size"] == 0x200
        assert data["size"] == 7
        assert data["truncated"] is False
        assert data["instruction_count"] == 5
        assert data["instructions"][-1]["mnemonic"] == "ret"


# -------------------------------------------------------------------------
# Against the interpreter's own ELF image
# -------------------------------------------------------------------------


class TestWithElf:
    @requires_elf_interpreter
    def test_by_name(self) -> None:
        sym = unique_text_symbol()
        if sym is None:
            pytest.skip("no uniquely named function symbol in .text")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", TruncatedFunctionWarning)
            result = disassemble_function(INTERPRETER, ByName(sym.name))
        assert result.rva == sym.rva
        assert result.instructions
        assert result.instructions[0].address == sym.rva
        assert 0 < result.window.length <= 512
