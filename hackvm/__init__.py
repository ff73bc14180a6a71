"""
hackvm — Hack VM Translator
===========================
Translates the stack-based Hack VM language into Hack assembly, with a
two-pass assembler and a CPU emulator to check the result.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌────────────┐    ┌───────────┐    ┌──────────┐
    │ VM text  │───>│  Parser  │───>│ Translator │───>│ Assembler │───>│ Emulator │
    │ (.vm)    │    │ (instrs) │    │ (asm text) │    │ (words)   │    │  (RAM)   │
    └──────────┘    └──────────┘    └────────────┘    └───────────┘    └──────────┘

    - instructions.py: Closed set of VM commands (frozen dataclasses)
    - parser.py:       One line -> one Instruction, ParseError on bad input
    - templates.py:    Instruction -> Hack assembly lines
    - labels.py:       Program-wide counters for comparison / return labels
    - translator.py:   Drives the templates, emits the bootstrap once
    - assembler.py:    Two-pass label resolver -> 16-bit words
    - emulator.py:     Runs words on a model of the Hack CPU
    - platform.py:     Memory map and translation profiles
"""

__version__ = "0.3.0"

from .instructions import *
from .labels import LabelAllocator
from .parser import LineParser, ParseError, parse_line, parse_source
from .translator import Translator, TranslationError, translate_source
from .assembler import Assembler, AssemblerError, assemble
from .emulator import HackEmulator, StopReason


def build_program(units, **kwargs) -> str:
    """Translate (unit name, VM lines) pairs into one assembly text."""
    translator = Translator(**kwargs)
    return "\n".join(translator.translate_program(units)) + "\n"


def run_program(units, max_steps: int = HackEmulator.DEFAULT_MAX_STEPS, **kwargs) -> HackEmulator:
    """Full pipeline: translate -> assemble -> run. Returns the emulator.

    Handy for checking what a VM program leaves in RAM.
    """
    words = assemble(build_program(units, **kwargs))
    emu = HackEmulator()
    emu.load_words(words)
    emu.run(max_steps=max_steps)
    return emu
