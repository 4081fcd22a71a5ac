"""funcdump — single-function disassembly for PE and ELF modules.

Resolves a function by name or RVA, reads a bounded window of its code
section, decodes it with capstone, and stops at the first return
instruction.
"""

from funcdump.address import ByAddress as ByAddress
from funcdump.address import ByName as ByName
from funcdump.core import FunctionDisassembly as FunctionDisassembly
from funcdump.core import disassemble_function as disassemble_function

__version__ = "0.1.0"
