"""
Line parser for the Hack VM language.

Turns one source line into an Instruction (or None for blank and
comment-only lines). Grammar, one command per line:

  push|pop <segment> <index>
  add | sub | neg | eq | gt | lt | and | or | not
  label|goto|if-goto <name>
  function <name> <nLocals>
  call <name> <nArgs>
  return

Comments run from ``//`` to end of line.
"""

from __future__ import annotations
import logging
import re
from typing import Iterable, Iterator, List, Optional

from .instructions import (
    Instruction, Segment, Pointer, BinaryKind, UnaryKind, CompareKind,
    PushConstant, PushSegment, PopSegment, PushStatic, PopStatic,
    PushPointer, PopPointer, PushTemp, PopTemp,
    BinaryOp, UnaryOp, CompareOp, Label, Goto, IfGoto,
    Function, Return, Call,
)
from .platform import TEMP_SIZE, MIN_CONSTANT, MAX_CONSTANT

log = logging.getLogger(__name__)

COMMENT = "//"

# Hack symbols: letters, digits, '_', '.', '$', ':' -- not starting with a digit
_SYMBOL_RE = re.compile(r"^[A-Za-z_.$:][A-Za-z0-9_.$:]*$")
_INT_RE = re.compile(r"^-?[0-9]+$")
_UINT_RE = re.compile(r"^[0-9]+$")

_BINARY = {k.value: k for k in BinaryKind}
_UNARY = {k.value: k for k in UnaryKind}
_COMPARE = {k.value: k for k in CompareKind}
_SEGMENTS = {s.value: s for s in Segment}

OPCODES = frozenset(
    ["push", "pop", "label", "goto", "if-goto", "function", "call", "return"]
    + list(_BINARY) + list(_UNARY) + list(_COMPARE)
)


class ParseError(Exception):
    """Malformed VM line. Translation of the unit stops here."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = "",
                 unit: str = ""):
        self.reason = message
        self.line_num = line_num
        self.line_text = line_text
        self.unit = unit
        where = f"{unit}:{line_num}" if unit else f"Line {line_num}"
        text = f": '{line_text.strip()}'" if line_text.strip() else ""
        super().__init__(f"{where}: {message}{text}")


def strip_comment(line: str) -> str:
    """Drop a trailing ``//`` comment and surrounding whitespace."""
    pos = line.find(COMMENT)
    if pos >= 0:
        line = line[:pos]
    return line.strip()


class LineParser:
    """Parses VM lines of one unit.

    Usage:
        p = LineParser("Main")
        instrs = list(p.parse_lines(source.splitlines()))
    """

    def __init__(self, unit: str = "", strict: bool = False):
        self.unit = unit
        self.strict = strict
        self.skipped: List[int] = []   # line numbers of ignored unknown opcodes

    def parse_lines(self, lines: Iterable[str]) -> Iterator[Instruction]:
        for line_num, line in enumerate(lines, 1):
            instr = self.parse_line(line, line_num)
            if instr is not None:
                yield instr

    def parse_line(self, line: str, line_num: int = 0) -> Optional[Instruction]:
        text = strip_comment(line)
        if not text:
            return None

        tokens = text.split()
        op = tokens[0]
        args = tokens[1:]

        if op not in OPCODES:
            if args or self.strict:
                raise self._error(f"Unknown command '{op}'", line_num, line)
            log.warning("%s:%d: ignoring unknown command '%s'", self.unit or "<vm>", line_num, op)
            self.skipped.append(line_num)
            return None

        if op == "push" or op == "pop":
            return self._parse_push_pop(op, args, line_num, line)
        if op in _BINARY:
            self._expect_arity(op, args, 0, line_num, line)
            return BinaryOp(_BINARY[op], line_num=line_num)
        if op in _UNARY:
            self._expect_arity(op, args, 0, line_num, line)
            return UnaryOp(_UNARY[op], line_num=line_num)
        if op in _COMPARE:
            self._expect_arity(op, args, 0, line_num, line)
            return CompareOp(_COMPARE[op], line_num=line_num)
        if op == "return":
            self._expect_arity(op, args, 0, line_num, line)
            return Return(line_num=line_num)

        if op in ("label", "goto", "if-goto"):
            self._expect_arity(op, args, 1, line_num, line)
            name = self._symbol(args[0], line_num, line)
            cls = {"label": Label, "goto": Goto, "if-goto": IfGoto}[op]
            return cls(name, line_num=line_num)

        # function / call
        self._expect_arity(op, args, 2, line_num, line)
        name = self._symbol(args[0], line_num, line)
        count = self._index(args[1], line_num, line)
        if op == "function":
            return Function(name, count, line_num=line_num)
        return Call(name, count, line_num=line_num)

    # ── Helpers ─────────────────────────────

    def _parse_push_pop(self, op: str, args: List[str], line_num: int,
                        line: str) -> Instruction:
        self._expect_arity(op, args, 2, line_num, line)
        segment, raw_index = args

        if segment == "constant":
            if op == "pop":
                raise self._error("Cannot pop to the constant segment", line_num, line)
            if not _INT_RE.match(raw_index):
                raise self._error(f"Invalid constant '{raw_index}'", line_num, line)
            value = int(raw_index)
            if not MIN_CONSTANT <= value <= MAX_CONSTANT:
                raise self._error(f"Constant {value} out of 16-bit range", line_num, line)
            return PushConstant(value, line_num=line_num)

        index = self._index(raw_index, line_num, line)

        if segment == "pointer":
            if index not in (0, 1):
                raise self._error(f"Pointer index must be 0 or 1, got {index}", line_num, line)
            cls = PushPointer if op == "push" else PopPointer
            return cls(Pointer(index), line_num=line_num)

        if segment == "temp":
            if index >= TEMP_SIZE:
                raise self._error(f"Temp index {index} out of range 0-{TEMP_SIZE - 1}",
                                  line_num, line)
            cls = PushTemp if op == "push" else PopTemp
            return cls(index, line_num=line_num)

        if segment == "static":
            cls = PushStatic if op == "push" else PopStatic
            return cls(index, line_num=line_num)

        if segment not in _SEGMENTS:
            raise self._error(f"Unknown segment '{segment}'", line_num, line)
        cls = PushSegment if op == "push" else PopSegment
        return cls(_SEGMENTS[segment], index, line_num=line_num)

    def _expect_arity(self, op: str, args: List[str], count: int,
                      line_num: int, line: str):
        if len(args) != count:
            raise self._error(
                f"'{op}' takes {count} operand{'s' if count != 1 else ''}, got {len(args)}",
                line_num, line)

    def _index(self, text: str, line_num: int, line: str) -> int:
        if not _UINT_RE.match(text):
            raise self._error(f"Expected a non-negative integer, got '{text}'", line_num, line)
        return int(text)

    def _symbol(self, text: str, line_num: int, line: str) -> str:
        if not _SYMBOL_RE.match(text):
            raise self._error(f"Invalid symbol '{text}'", line_num, line)
        return text

    def _error(self, message: str, line_num: int, line: str) -> ParseError:
        return ParseError(message, line_num, line, unit=self.unit)


def parse_line(line: str, line_num: int = 0, unit: str = "",
               strict: bool = False) -> Optional[Instruction]:
    """Parse a single line; None for blank/comment/ignored lines."""
    return LineParser(unit, strict=strict).parse_line(line, line_num)


def parse_source(source: str, unit: str = "", strict: bool = False) -> List[Instruction]:
    """Parse a whole VM source text into instructions."""
    return list(LineParser(unit, strict=strict).parse_lines(source.splitlines()))
