"""
Hack platform memory map and translation profiles.

RAM layout seen by translated programs:
  0        SP     stack pointer (next free stack slot)
  1        LCL    base of the current function's locals
  2        ARG    base of the current function's arguments
  3        THIS   base of the `this` segment (pointer 0)
  4        THAT   base of the `that` segment (pointer 1)
  5-12     temp segment (8 words)
  13-15    scratch registers, reserved for the translator
  16-255   static variables (assembler-allocated)
  256-2047 operand stack
  16384    SCREEN memory map
  24576    KBD keyboard register
"""

from typing import Dict

SP = 0
LCL = 1
ARG = 2
THIS = 3
THAT = 4

TEMP_BASE = 5
TEMP_SIZE = 8
SCRATCH = (13, 14, 15)

VARIABLE_BASE = 16
STACK_BASE = 256
SCREEN = 16384
KBD = 24576

RAM_SIZE = 32768
ROM_SIZE = 32768
WORD_MASK = 0xFFFF

# Largest value an A-instruction can load (15-bit immediate)
MAX_ADDRESS = 0x7FFF
MIN_CONSTANT = -32768
MAX_CONSTANT = 32767


PREDEFINED_SYMBOLS: Dict[str, int] = {
    "SP": SP,
    "LCL": LCL,
    "ARG": ARG,
    "THIS": THIS,
    "THAT": THAT,
    "SCREEN": SCREEN,
    "KBD": KBD,
}
PREDEFINED_SYMBOLS.update({f"R{i}": i for i in range(16)})


# ──────────────────────────────────────────────
# Translation profiles
# ──────────────────────────────────────────────

PROFILES = {
    "standard": {
        "bootstrap": True,
        "stack_base": STACK_BASE,
        "entry": "Sys.init",
        "description": "Full program: SP=256, then call Sys.init",
    },
    "bare": {
        "bootstrap": False,
        "stack_base": STACK_BASE,
        "entry": "Sys.init",
        "description": "No bootstrap; the test harness initializes SP and segments",
    },
}


def get_profile(name: str) -> dict:
    """Return a copy of a named profile, falling back to 'standard'."""
    return dict(PROFILES.get(name, PROFILES["standard"]))
