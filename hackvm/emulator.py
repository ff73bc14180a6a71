"""
Hack CPU Emulator.

Runs assembled Hack machine words so translated programs can be checked
by executing them rather than by reading their text.

Machine model:
  A   — 16-bit address/data register
  D   — 16-bit data register
  PC  — program counter (ROM word address)
  RAM — 32K words; M is RAM[A]
  ROM — program words, read-only

Execution model:
  1. Fetch word at PC
  2. A-instruction: A = value, PC += 1
  3. C-instruction: compute ALU(D, A or M), store to dest, jump or PC += 1

Termination reasons:
  - TIMEOUT:  max_steps exceeded
  - BREAK:    breakpoint address hit
  - HALT:     `@here-1; 0;JMP` style infinite loop (program end idiom)
  - ILLEGAL:  PC left the loaded program
"""

from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, List, Optional, Set

from .platform import RAM_SIZE, WORD_MASK, SP, STACK_BASE

log = logging.getLogger(__name__)


class StopReason(Enum):
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'
    HALT = 'HALT'
    ILLEGAL = 'ILLEGAL'


# ══════════════════════════════════════════════
# ALU
# ══════════════════════════════════════════════

def signed(value: int) -> int:
    """Interpret a 16-bit word as two's complement."""
    value &= WORD_MASK
    return value - 0x10000 if value & 0x8000 else value


def alu(x: int, y: int, control: int) -> int:
    """Hack ALU. ``control`` holds zx nx zy ny f no (bit 5 .. bit 0)."""
    if control & 0b100000:
        x = 0
    if control & 0b010000:
        x = ~x & WORD_MASK
    if control & 0b001000:
        y = 0
    if control & 0b000100:
        y = ~y & WORD_MASK
    if control & 0b000010:
        out = (x + y) & WORD_MASK
    else:
        out = x & y
    if control & 0b000001:
        out = ~out & WORD_MASK
    return out


def _jump_taken(value: int, jump: int) -> bool:
    """jump bits j1 j2 j3 = (out < 0, out == 0, out > 0)."""
    v = signed(value)
    return bool((jump & 0b100 and v < 0)
                or (jump & 0b010 and v == 0)
                or (jump & 0b001 and v > 0))


class HackEmulator:
    """Hack computer emulator.

    Usage:
        emu = HackEmulator()
        emu.load_words(assemble(asm_text))
        reason = emu.run(max_steps=100_000)
        print(emu.signed(emu.peek(256)))
    """

    DEFAULT_MAX_STEPS = 1_000_000

    def __init__(self):
        self.A = 0
        self.D = 0
        self.PC = 0
        self.ram: List[int] = [0] * RAM_SIZE
        self.rom: List[int] = []
        self.steps = 0
        self._breakpoints: Set[int] = set()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_words(self, words: Iterable[int]):
        """Load a program into ROM and reset the CPU (RAM is kept)."""
        self.rom = [w & WORD_MASK for w in words]
        self.reset()

    def load_hack(self, text: str):
        """Load .hack text (binary strings, one per line)."""
        self.load_words(int(line, 2) for line in text.split() if line)

    def reset(self):
        self.A = 0
        self.D = 0
        self.PC = 0
        self.steps = 0

    def add_breakpoint(self, address: int):
        self._breakpoints.add(address)

    def remove_breakpoint(self, address: int):
        self._breakpoints.discard(address)

    # ══════════════════════════════════════════════
    # Memory helpers
    # ══════════════════════════════════════════════

    def peek(self, address: int) -> int:
        return self.ram[address]

    def poke(self, address: int, value: int):
        self.ram[address] = value & WORD_MASK

    @staticmethod
    def signed(value: int) -> int:
        return signed(value)

    def stack(self) -> List[int]:
        """Signed words between the stack base and SP."""
        return [signed(w) for w in self.ram[STACK_BASE:self.ram[SP]]]

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self, ignore_breakpoint: bool = False) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        pc = self.PC
        if pc in self._breakpoints and not ignore_breakpoint:
            return StopReason.BREAK
        if not 0 <= pc < len(self.rom):
            return StopReason.ILLEGAL

        word = self.rom[pc]

        if not word & 0x8000:
            self.A = word
            self.PC = pc + 1
            self.steps += 1
            return None

        a_bit = (word >> 12) & 1
        control = (word >> 6) & 0b111111
        dest = (word >> 3) & 0b111
        jump = word & 0b111

        address = self.A
        if (a_bit or dest & 0b001) and address >= RAM_SIZE:
            return StopReason.ILLEGAL
        y = self.ram[address] if a_bit else self.A
        out = alu(self.D, y, control)

        # Writes use the A value from before this instruction
        if dest & 0b001:
            self.ram[address] = out
        if dest & 0b010:
            self.D = out
        if dest & 0b100:
            self.A = out

        self.steps += 1
        if jump and _jump_taken(out, jump):
            if jump == 0b111 and address == pc - 1 and self.rom[pc - 1] == address:
                self.PC = address
                return StopReason.HALT
            self.PC = address
        else:
            self.PC = pc + 1
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until a stop condition.

        A breakpoint at the starting PC is stepped over, so calling run()
        again after a BREAK continues execution.
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        first = True
        for _ in range(max_steps):
            reason = self.step(ignore_breakpoint=first)
            first = False
            if reason is not None:
                log.debug("Stopped: %s at PC=%d after %d steps", reason.value, self.PC, self.steps)
                return reason
        return StopReason.TIMEOUT

    def display(self) -> str:
        """One-line register summary."""
        regs = " ".join(f"{name}={signed(self.ram[i])}"
                        for i, name in enumerate(("SP", "LCL", "ARG", "THIS", "THAT")))
        return f"PC={self.PC} A={self.A} D={signed(self.D)} {regs}"
