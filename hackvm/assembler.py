"""
Hack Two-Pass Assembler.

Assembles Hack assembly text (as produced by the translator) into 16-bit
machine words.

Instruction forms:
  A  — @value     load a constant, predefined symbol, label or variable
  C  — dest=comp;jump   (dest and jump optional)
  L  — (LABEL)    declares LABEL at the address of the next instruction

Word encoding:
  A-instruction: 0vvvvvvvvvvvvvvv
  C-instruction: 111a cccc ccdd djjj

How the two-pass algorithm works:
  Pass 1: Scan all lines, assign every (LABEL) the ROM address of the
          instruction that follows it. Nothing is encoded yet.
  Pass 2: Encode instructions. Symbols that are neither predefined nor
          labels are variables and get RAM addresses from 16 upwards in
          order of first use.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .platform import PREDEFINED_SYMBOLS, VARIABLE_BASE, MAX_ADDRESS, ROM_SIZE

__all__ = ['Assembler', 'AssemblerError', 'assemble']

log = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


# ──────────────────────────────────────────────
# C-instruction tables
# ──────────────────────────────────────────────
# comp -> 7 bits "a c1..c6"

COMP: Dict[str, str] = {
    "0":   "0101010",
    "1":   "0111111",
    "-1":  "0111010",
    "D":   "0001100",
    "A":   "0110000",
    "!D":  "0001101",
    "!A":  "0110001",
    "-D":  "0001111",
    "-A":  "0110011",
    "D+1": "0011111",
    "A+1": "0110111",
    "D-1": "0001110",
    "A-1": "0110010",
    "D+A": "0000010",
    "D-A": "0010011",
    "A-D": "0000111",
    "D&A": "0000000",
    "D|A": "0010101",
    "M":   "1110000",
    "!M":  "1110001",
    "-M":  "1110011",
    "M+1": "1110111",
    "M-1": "1110010",
    "D+M": "1000010",
    "D-M": "1010011",
    "M-D": "1000111",
    "D&M": "1000000",
    "D|M": "1010101",
}

# Commutative spellings
COMP.update({
    "1+D": COMP["D+1"], "1+A": COMP["A+1"], "1+M": COMP["M+1"],
    "A+D": COMP["D+A"], "M+D": COMP["D+M"],
    "A&D": COMP["D&A"], "M&D": COMP["D&M"],
    "A|D": COMP["D|A"], "M|D": COMP["D|M"],
})

DEST_BITS = {"A": 0b100, "D": 0b010, "M": 0b001}

JUMP: Dict[str, int] = {
    "":    0b000,
    "JGT": 0b001,
    "JEQ": 0b010,
    "JGE": 0b011,
    "JLT": 0b100,
    "JNE": 0b101,
    "JLE": 0b110,
    "JMP": 0b111,
}

_SYMBOL_RE = re.compile(r"^[A-Za-z_.$:][A-Za-z0-9_.$:\-]*$")


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

@dataclass
class AsmLine:
    """Parsed assembly source line."""
    kind: Optional[str] = None      # 'A', 'C', 'L' or None for blank lines
    text: str = ""                  # instruction text, spaces removed
    comment: Optional[str] = None
    line_num: int = 0
    raw: str = ""


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Split one line into instruction text and comment."""
    result = AsmLine(line_num=line_num, raw=line)

    text = line
    pos = text.find("//")
    if pos >= 0:
        result.comment = text[pos + 2:].strip()
        text = text[:pos]

    text = "".join(text.split())
    if not text:
        return result

    result.text = text
    if text.startswith("@"):
        result.kind = "A"
    elif text.startswith("("):
        result.kind = "L"
    else:
        result.kind = "C"
    return result


def _encode_c(text: str, line_num: int) -> int:
    """Encode dest=comp;jump."""
    dest, _, rest = text.rpartition("=")
    comp, _, jump = rest.partition(";")

    if comp not in COMP:
        raise AssemblerError(f"Invalid comp '{comp}'", line_num, text)
    if jump not in JUMP:
        raise AssemblerError(f"Invalid jump '{jump}'", line_num, text)

    dest_bits = 0
    for ch in dest:
        bit = DEST_BITS.get(ch)
        if bit is None or dest_bits & bit:
            raise AssemblerError(f"Invalid dest '{dest}'", line_num, text)
        dest_bits |= bit

    return (0b111 << 13) | (int(COMP[comp], 2) << 6) | (dest_bits << 3) | JUMP[jump]


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass Hack assembler.

    Usage:
        asm = Assembler()
        words = asm.assemble(source_text)
        hack = asm.to_hack()
    """

    def __init__(self):
        self.symbols: Dict[str, int] = {}     # predefined + labels + variables
        self.labels: Dict[str, int] = {}      # (LABEL) -> ROM address
        self.variables: Dict[str, int] = {}   # variable -> RAM address
        self.words: List[int] = []            # assembled machine words
        self.errors: List[str] = []
        self._lines: List[AsmLine] = []
        self._addresses: List[Optional[int]] = []  # ROM address per line (None if no code)
        self._next_variable = VARIABLE_BASE

    def assemble(self, source: str) -> List[int]:
        """Assemble source text into machine words.

        Errors are collected per pass and raised together.
        """
        self.symbols = dict(PREDEFINED_SYMBOLS)
        self.labels = {}
        self.variables = {}
        self.words = []
        self.errors = []
        self._addresses = []
        self._next_variable = VARIABLE_BASE
        self._lines = [_parse_line(line, i) for i, line in enumerate(source.split("\n"), 1)]

        self._pass1()
        if self.errors:
            raise AssemblerError("Pass 1 errors:\n" + "\n".join(self.errors))

        self._pass2()
        if self.errors:
            raise AssemblerError("Pass 2 errors:\n" + "\n".join(self.errors))

        log.debug("Assembled %d words, %d labels, %d variables",
                  len(self.words), len(self.labels), len(self.variables))
        return self.words

    def _pass1(self):
        """Pass 1: assign ROM addresses to labels."""
        pc = 0
        for line in self._lines:
            if line.kind == "L":
                try:
                    self._define_label(line, pc)
                except AssemblerError as e:
                    self.errors.append(str(e))
                self._addresses.append(None)
            elif line.kind in ("A", "C"):
                self._addresses.append(pc)
                pc += 1
            else:
                self._addresses.append(None)
        if pc > ROM_SIZE:
            self.errors.append(f"Program too large: {pc} words (ROM holds {ROM_SIZE})")

    def _define_label(self, line: AsmLine, pc: int):
        if not line.text.endswith(")"):
            raise AssemblerError("Unterminated label declaration", line.line_num, line.raw)
        name = line.text[1:-1]
        if not _SYMBOL_RE.match(name):
            raise AssemblerError(f"Invalid label '{name}'", line.line_num, line.raw)
        if name in PREDEFINED_SYMBOLS:
            raise AssemblerError(f"Built-in symbol redefined: {name}", line.line_num, line.raw)
        if name in self.labels:
            raise AssemblerError(f"Duplicate label: {name}", line.line_num, line.raw)
        self.labels[name] = pc
        self.symbols[name] = pc

    def _pass2(self):
        """Pass 2: encode instructions with the complete label table."""
        for line in self._lines:
            try:
                if line.kind == "A":
                    self.words.append(self._encode_a(line))
                elif line.kind == "C":
                    self.words.append(_encode_c(line.text, line.line_num))
            except AssemblerError as e:
                self.errors.append(str(e))

    def _encode_a(self, line: AsmLine) -> int:
        operand = line.text[1:]
        if operand.isdigit():
            value = int(operand)
            if value > MAX_ADDRESS:
                raise AssemblerError(f"Constant {value} exceeds 15 bits", line.line_num, line.raw)
            return value
        if not _SYMBOL_RE.match(operand):
            raise AssemblerError(f"Invalid symbol '{operand}'", line.line_num, line.raw)
        if operand not in self.symbols:
            self.symbols[operand] = self._next_variable
            self.variables[operand] = self._next_variable
            self._next_variable += 1
        return self.symbols[operand]

    # ── Output ────────────────────────────────

    def to_hack(self) -> str:
        """Return the program as .hack text (one 16-digit binary word per line)."""
        return "".join(f"{w:016b}\n" for w in self.words)

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, word and source."""
        lines = []
        lines.append(f"{'ADDR':>5}  {'WORD':<16}  SOURCE")
        lines.append("-" * 60)

        for asmline, addr in zip(self._lines, self._addresses):
            raw = asmline.raw.strip()
            if addr is not None and addr < len(self.words):
                if len(raw) > 40:
                    raw = raw[:40]
                lines.append(f"{addr:5d}  {self.words[addr]:016b}  {raw}")
            elif raw:
                lines.append(f"{'':5}  {'':16}  {raw}")

        return "\n".join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str) -> List[int]:
    """Assemble source text, return the machine words."""
    return Assembler().assemble(source)
