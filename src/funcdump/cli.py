"""Command-line entry point: disassemble one function from a binary.

Usage:
    funcdump target.dll CreateWidget
    funcdump target.dll 0x1010
    funcdump target.dll --rva 0x1010 --json
    funcdump target.elf 'parse_*' --symbols functions.txt
"""

import json
import warnings
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from funcdump.address import AddressQuery, ByAddress, parse_query
from funcdump.config import load_config
from funcdump.core import FunctionDisassembly, disassemble_function
from funcdump.errors import FuncdumpError, TruncatedFunctionWarning
from funcdump.symbols import FunctionListSource, SymbolSource

_EPILOG = """\
[bold]Examples:[/bold]

funcdump target.dll CreateWidget              Disassemble an exported function

funcdump target.dll 0x1010                    Disassemble at an RVA

funcdump target.dll --rva 0x1010 --json       Machine-readable JSON output

funcdump target.elf 'parse_*' -s funcs.txt    Name mask resolved via a function list

[dim]Reads at most 512 bytes (configurable in funcdump.toml) from the code
section and stops at the first return instruction.[/dim]"""

app = typer.Typer(
    help="Disassemble a single function from a PE or ELF module.",
    rich_markup_mode="rich",
    epilog=_EPILOG,
)

# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(msg: str, *, json_mode: bool = False, code: int = 1) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {escape(msg)}", highlight=False)
    raise typer.Exit(code=code)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))


def parse_rva(rva_str: str, *, json_mode: bool = False) -> int:
    """Parse a hex RVA string (``0x``-prefixed or bare), exiting on invalid input."""
    try:
        return int(rva_str.strip(), 16)
    except ValueError:
        error_exit(f"Invalid hex RVA: {rva_str!r}", json_mode=json_mode)


def print_listing(result: FunctionDisassembly) -> None:
    """Print a header line and one ``address  bytes  mnemonic operands`` line per instruction."""
    print(
        f"Function at RVA 0x{result.rva:08x} "
        f"(file offset 0x{result.window.file_offset:x}, {result.size} bytes) "
        f"from {result.path.name}:"
    )
    print()
    for insn in result.instructions:
        print(f"  0x{insn.address:08x}:  {insn.raw.hex():<20s}  {insn.mnemonic:<8s} {insn.op_str}")


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


@app.command()
def main(
    binary: Path = typer.Argument(..., help="PE or ELF module to read"),
    function: str | None = typer.Argument(
        None, help="Function name, name mask, or 0x-prefixed RVA"
    ),
    rva: str | None = typer.Option(None, "--rva", "-r", help="Function RVA in hex"),
    symbols_file: Path | None = typer.Option(
        None,
        "--symbols",
        "-s",
        help="Function list ('0x<rva> <size> <name>' per line) used instead of the module's tables",
    ),
    max_bytes: int | None = typer.Option(None, "--max-bytes", help="Read cap in bytes"),
    section: str | None = typer.Option(None, "--section", help="Code section name"),
    strict_bounds: bool | None = typer.Option(
        None,
        "--strict-bounds/--no-strict-bounds",
        help="Reject RVAs outside the code section",
    ),
    legacy_first_return: bool | None = typer.Option(
        None,
        "--legacy-first-return/--no-legacy-first-return",
        help="Treat a return at the first instruction as 'no return found'",
    ),
    config_file: Path | None = typer.Option(
        None, "--config", help="Settings file (default: nearest funcdump.toml)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Disassemble one function, stopping at its first return instruction.

    Exactly one of FUNCTION or ``--rva`` must be given.  When no return is
    found inside the read window, the whole window is printed along with a
    truncated-function warning.
    """
    if (function is None) == (rva is None):
        error_exit("Specify exactly one of FUNCTION or --rva", json_mode=json_output)

    query: AddressQuery = (
        ByAddress(parse_rva(rva, json_mode=json_output))
        if rva is not None
        else parse_query(function or "")
    )

    try:
        cfg = load_config(config_file).override(
            max_bytes=max_bytes,
            code_section=section,
            strict_bounds=strict_bounds,
            legacy_first_return=legacy_first_return,
        )
        symbols: SymbolSource | None = (
            FunctionListSource.from_path(symbols_file) if symbols_file is not None else None
        )
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", TruncatedFunctionWarning)
            result = disassemble_function(binary, query, symbols=symbols, config=cfg)
    except (FuncdumpError, OSError, ValueError) as e:
        error_exit(str(e), json_mode=json_output)

    if json_output:
        json_print(result.to_dict())
        return

    print_listing(result)
    for w in caught:
        if issubclass(w.category, TruncatedFunctionWarning):
            _err_console.print(
                f"[yellow bold]warning:[/yellow bold] {escape(str(w.message))}", highlight=False
            )
        else:
            warnings.showwarning(w.message, w.category, w.filename, w.lineno)


def main_entry() -> None:
    """Run the Typer CLI application."""
    app()


if __name__ == "__main__":
    main_entry()
