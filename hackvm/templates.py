"""
Hack assembly templates for VM instructions.

Every function here returns the assembly lines for one VM command. They
only read their arguments; the sole state they touch is the
LabelAllocator handed to comparison and call templates.

Register usage convention:
  - SP holds the address of the next free stack slot
  - D carries the value being pushed or the value just popped
  - R13, R14: the first two platform.SCRATCH words (operands, pop target
    address, return frame)

Stack discipline:
  push:  D = value;  M[SP] = D;  SP = SP + 1
  pop:   SP = SP - 1;  D = M[SP]

Call frame, as laid out by `call f n` (stack grows upward):
  ARG ->  argument 0 .. argument n-1
          return address
          saved LCL
          saved ARG
          saved THIS
          saved THAT
  LCL ->  local 0 .. local k-1
  SP  ->
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

from .instructions import Segment, Pointer, BinaryKind, UnaryKind, CompareKind
from .labels import LabelAllocator
from .platform import TEMP_BASE, MAX_ADDRESS, SCRATCH

INDENT = "    "

_R13, _R14 = (f"R{n}" for n in SCRATCH[:2])


@dataclass
class UnitContext:
    """Ambient state a template may need besides its operands."""
    unit: str
    labels: LabelAllocator
    function: str = ""


# ──────────────────────────────────────────────
# Output helpers
# ──────────────────────────────────────────────

def _asm(*lines: str) -> List[str]:
    """Indent instructions; label declarations stay in column 0."""
    return [line if line.startswith("(") else INDENT + line for line in lines]


def frame(title: str, body: List[str]) -> List[str]:
    """Bracket a block with `// title` ... `// ~title`."""
    return [f"// {title}"] + body + [f"// ~{title}"]


_PUSH_D = ("@SP", "A=M", "M=D", "@SP", "M=M+1")
_POP_D = ("@SP", "M=M-1", "A=M", "D=M")


def push_d() -> List[str]:
    return _asm(*_PUSH_D)


def pop_d() -> List[str]:
    return _asm(*_POP_D)


def push_address(symbol: str) -> List[str]:
    """Push the word stored at a fixed address."""
    return _asm(f"@{symbol}", "D=M", *_PUSH_D)


def pop_address(symbol: str) -> List[str]:
    """Pop into a fixed address."""
    return _asm(*_POP_D, f"@{symbol}", "M=D")


# ──────────────────────────────────────────────
# Memory access
# ──────────────────────────────────────────────

def push_constant(value: int) -> List[str]:
    if value == -1:
        return _asm("@SP", "A=M", "M=-1", "@SP", "M=M+1")
    if value >= 0:
        return _asm(f"@{value}", "D=A", *_PUSH_D)
    if value > -MAX_ADDRESS - 1:
        return _asm(f"@{-value}", "D=-A", *_PUSH_D)
    # -32768 has no positive counterpart in 15 bits
    return _asm(f"@{MAX_ADDRESS}", "D=-A", "D=D-1", *_PUSH_D)


def push_segment(segment: Segment, offset: int) -> List[str]:
    return _asm(
        f"@{offset}", "D=A",
        f"@{segment.base}", "A=D+M", "D=M",
        *_PUSH_D,
    )


def pop_segment(segment: Segment, offset: int) -> List[str]:
    return _asm(
        *_POP_D,
        f"@{_R13}", "M=D",
        f"@{offset}", "D=A",
        f"@{segment.base}", "D=D+M",
        f"@{_R14}", "M=D",
        f"@{_R13}", "D=M",
        f"@{_R14}", "A=M", "M=D",
    )


def static_symbol(unit: str, offset: int) -> str:
    return f"{unit}.{offset}"


def push_static(unit: str, offset: int) -> List[str]:
    return push_address(static_symbol(unit, offset))


def pop_static(unit: str, offset: int) -> List[str]:
    return pop_address(static_symbol(unit, offset))


def push_temp(offset: int) -> List[str]:
    return push_address(f"R{TEMP_BASE + offset}")


def pop_temp(offset: int) -> List[str]:
    return pop_address(f"R{TEMP_BASE + offset}")


def push_pointer(which: Pointer) -> List[str]:
    return push_address(which.symbol)


def pop_pointer(which: Pointer) -> List[str]:
    return pop_address(which.symbol)


# ──────────────────────────────────────────────
# Arithmetic / logic
# ──────────────────────────────────────────────

BINARY_OPERATORS = {
    BinaryKind.ADD: "+",
    BinaryKind.SUB: "-",
    BinaryKind.AND: "&",
    BinaryKind.OR: "|",
}

UNARY_OPERATORS = {
    UnaryKind.NEG: "-",
    UnaryKind.NOT: "!",
}

COMPARE_JUMPS = {
    CompareKind.EQ: "JEQ",
    CompareKind.GT: "JGT",
    CompareKind.LT: "JLT",
}


def _pop_operands() -> List[str]:
    """Right operand -> R13, left operand -> R14."""
    return pop_address(_R13) + pop_address(_R14)


def binary_op(kind: BinaryKind) -> List[str]:
    op = BINARY_OPERATORS[kind]
    return (_pop_operands()
            + _asm(f"@{_R14}", "D=M", f"@{_R13}", f"M=D{op}M")
            + push_address(_R13))


def unary_op(kind: UnaryKind) -> List[str]:
    op = UNARY_OPERATORS[kind]
    return pop_address(_R13) + _asm(f"@{_R13}", f"M={op}M") + push_address(_R13)


def compare_op(kind: CompareKind, labels: LabelAllocator) -> List[str]:
    """Compare left with right, push -1 (true) or 0 (false).

    D is brought to a value with the sign of left - right, then the jump
    tests it. Operands of equal sign are subtracted directly. When the
    signs differ the subtraction can overflow, so D is set to +1 or -1
    from the sign of the left operand instead.
    """
    n = labels.next_comparison()
    tag = kind.value.upper()
    if_label = f"IF-{tag}-{n}"
    end_label = f"END-{tag}-{n}"
    neg_label = f"NEG-{tag}-{n}"
    sub_label = f"SUB-{tag}-{n}"
    test_label = f"TEST-{tag}-{n}"
    return (_pop_operands()
            + _asm(f"@{_R14}", "D=M", f"@{neg_label}", "D;JLT",
                   # left >= 0
                   f"@{_R13}", "D=M", f"@{sub_label}", "D;JGE",
                   "D=1", f"@{test_label}", "0;JMP",
                   # left < 0
                   f"({neg_label})",
                   f"@{_R13}", "D=M", f"@{sub_label}", "D;JLT",
                   "D=-1", f"@{test_label}", "0;JMP",
                   f"({sub_label})",
                   f"@{_R14}", "D=M", f"@{_R13}", "D=D-M",
                   f"({test_label})",
                   f"@{if_label}", f"D;{COMPARE_JUMPS[kind]}")
            + push_constant(0)
            + _asm(f"@{end_label}", "0;JMP", f"({if_label})")
            + push_constant(-1)
            + _asm(f"({end_label})"))


# ──────────────────────────────────────────────
# Program flow
# ──────────────────────────────────────────────

def qualify(function: str, name: str) -> str:
    """Labels are scoped to their enclosing function."""
    return f"{function}${name}" if function else name


def label(function: str, name: str) -> List[str]:
    return _asm(f"({qualify(function, name)})")


def goto(function: str, name: str) -> List[str]:
    return _asm(f"@{qualify(function, name)}", "0;JMP")


def if_goto(function: str, name: str) -> List[str]:
    """Pop; jump if the popped value is non-zero."""
    return pop_d() + _asm(f"@{qualify(function, name)}", "D;JNE")


# ──────────────────────────────────────────────
# Function calls
# ──────────────────────────────────────────────

SAVED_POINTERS = ("LCL", "ARG", "THIS", "THAT")
FRAME_SIZE = 1 + len(SAVED_POINTERS)


def function(name: str, local_count: int) -> List[str]:
    lines = _asm(f"({name})")
    for _ in range(local_count):
        lines += push_constant(0)
    return lines


def call(name: str, arg_count: int, labels: LabelAllocator) -> List[str]:
    ret = f"RET-{labels.next_call_site()}"
    lines = _asm(f"@{ret}", "D=A", *_PUSH_D)
    for pointer in SAVED_POINTERS:
        lines += push_address(pointer)
    lines += _asm(
        # ARG = SP - 5 - nArgs
        "@SP", "D=M", f"@{FRAME_SIZE + arg_count}", "D=D-A", "@ARG", "M=D",
        # LCL = SP
        "@SP", "D=M", "@LCL", "M=D",
        f"@{name}", "0;JMP",
        f"({ret})",
    )
    return lines


def return_() -> List[str]:
    # R13 = FRAME = LCL, R14 = return address = *(FRAME - 5)
    lines = _asm(
        "@LCL", "D=M", f"@{_R13}", "M=D",
        f"@{FRAME_SIZE}", "A=D-A", "D=M", f"@{_R14}", "M=D",
    )
    # *ARG = pop(); SP = ARG + 1
    lines += pop_d() + _asm("@ARG", "A=M", "M=D", "@ARG", "D=M+1", "@SP", "M=D")
    # THAT, THIS, ARG, LCL = *(FRAME-1) .. *(FRAME-4)
    for distance, pointer in enumerate(reversed(SAVED_POINTERS), 1):
        lines += _asm(f"@{_R13}", "D=M", f"@{distance}", "A=D-A", "D=M", f"@{pointer}", "M=D")
    lines += _asm(f"@{_R14}", "A=M", "0;JMP")
    return lines


def bootstrap(stack_base: int, entry: str, labels: LabelAllocator) -> List[str]:
    """SP = stack_base, then call the entry function with no arguments."""
    return _asm(f"@{stack_base}", "D=A", "@SP", "M=D") + call(entry, 0, labels)
