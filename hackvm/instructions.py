"""
Instruction model for the Hack VM language.

Each VM command parses into one of the frozen dataclasses below. The set
is closed: the translator keeps a template for every concrete class.

Operand kinds are enums whose values are the VM keywords, so
``Segment("local")`` is how the parser maps text onto them.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass, field

__all__ = [
    'Segment', 'Pointer', 'BinaryKind', 'UnaryKind', 'CompareKind',
    'Instruction', 'PushConstant', 'PushSegment', 'PopSegment',
    'PushStatic', 'PopStatic', 'PushPointer', 'PopPointer', 'PushTemp', 'PopTemp',
    'BinaryOp', 'UnaryOp', 'CompareOp', 'Label', 'Goto', 'IfGoto',
    'Function', 'Return', 'Call', 'INSTRUCTION_TYPES',
]

# ──────────────────────────────────────────────
# Operand kinds
# ──────────────────────────────────────────────

class Segment(enum.Enum):
    """Segments addressed through a base pointer cell."""
    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"

    @property
    def base(self) -> str:
        """Symbol of the cell holding the segment base address."""
        return _SEGMENT_BASES[self]


_SEGMENT_BASES = {
    Segment.LOCAL: "LCL",
    Segment.ARGUMENT: "ARG",
    Segment.THIS: "THIS",
    Segment.THAT: "THAT",
}


class Pointer(enum.Enum):
    """`pointer 0` / `pointer 1`."""
    THIS = 0
    THAT = 1

    @property
    def symbol(self) -> str:
        return self.name


class BinaryKind(enum.Enum):
    ADD = "add"
    SUB = "sub"
    AND = "and"
    OR = "or"


class UnaryKind(enum.Enum):
    NEG = "neg"
    NOT = "not"


class CompareKind(enum.Enum):
    EQ = "eq"
    GT = "gt"
    LT = "lt"


# ──────────────────────────────────────────────
# Instructions
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    """Base class. ``line_num`` is the 1-based source line (0 if synthetic)."""
    line_num: int = field(default=0, compare=False, kw_only=True)


@dataclass(frozen=True)
class PushConstant(Instruction):
    value: int

    def __str__(self):
        return f"push constant {self.value}"


@dataclass(frozen=True)
class PushSegment(Instruction):
    segment: Segment
    offset: int

    def __str__(self):
        return f"push {self.segment.value} {self.offset}"


@dataclass(frozen=True)
class PopSegment(Instruction):
    segment: Segment
    offset: int

    def __str__(self):
        return f"pop {self.segment.value} {self.offset}"


@dataclass(frozen=True)
class PushStatic(Instruction):
    offset: int

    def __str__(self):
        return f"push static {self.offset}"


@dataclass(frozen=True)
class PopStatic(Instruction):
    offset: int

    def __str__(self):
        return f"pop static {self.offset}"


@dataclass(frozen=True)
class PushPointer(Instruction):
    which: Pointer

    def __str__(self):
        return f"push pointer {self.which.value}"


@dataclass(frozen=True)
class PopPointer(Instruction):
    which: Pointer

    def __str__(self):
        return f"pop pointer {self.which.value}"


@dataclass(frozen=True)
class PushTemp(Instruction):
    offset: int

    def __str__(self):
        return f"push temp {self.offset}"


@dataclass(frozen=True)
class PopTemp(Instruction):
    offset: int

    def __str__(self):
        return f"pop temp {self.offset}"


@dataclass(frozen=True)
class BinaryOp(Instruction):
    kind: BinaryKind

    def __str__(self):
        return self.kind.value


@dataclass(frozen=True)
class UnaryOp(Instruction):
    kind: UnaryKind

    def __str__(self):
        return self.kind.value


@dataclass(frozen=True)
class CompareOp(Instruction):
    kind: CompareKind

    def __str__(self):
        return self.kind.value


@dataclass(frozen=True)
class Label(Instruction):
    name: str

    def __str__(self):
        return f"label {self.name}"


@dataclass(frozen=True)
class Goto(Instruction):
    name: str

    def __str__(self):
        return f"goto {self.name}"


@dataclass(frozen=True)
class IfGoto(Instruction):
    name: str

    def __str__(self):
        return f"if-goto {self.name}"


@dataclass(frozen=True)
class Function(Instruction):
    name: str
    local_count: int

    def __str__(self):
        return f"function {self.name} {self.local_count}"


@dataclass(frozen=True)
class Return(Instruction):

    def __str__(self):
        return "return"


@dataclass(frozen=True)
class Call(Instruction):
    name: str
    arg_count: int

    def __str__(self):
        return f"call {self.name} {self.arg_count}"


INSTRUCTION_TYPES = (
    PushConstant, PushSegment, PopSegment, PushStatic, PopStatic,
    PushPointer, PopPointer, PushTemp, PopTemp,
    BinaryOp, UnaryOp, CompareOp,
    Label, Goto, IfGoto,
    Function, Return, Call,
)
