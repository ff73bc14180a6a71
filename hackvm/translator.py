"""
VM -> Hack assembly translation driver.

Walks the instructions of each unit in order, dispatches every one to its
template and collects the output. A program is one or more units
translated by the same Translator: they share one LabelAllocator, and the
bootstrap (when the profile asks for it) is emitted once, ahead of the
first unit.

Usage:
    t = Translator()
    asm = t.translate_program([("Main", main_lines), ("Sys", sys_lines)])
"""

from __future__ import annotations
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .instructions import (
    Instruction, PushConstant, PushSegment, PopSegment, PushStatic, PopStatic,
    PushPointer, PopPointer, PushTemp, PopTemp, BinaryOp, UnaryOp, CompareOp,
    Label, Goto, IfGoto, Function, Return, Call,
)
from .labels import LabelAllocator
from .parser import LineParser
from .platform import get_profile
from . import templates as tpl

log = logging.getLogger(__name__)


class TranslationError(Exception):
    def __init__(self, message: str, instr: Optional[Instruction] = None, unit: str = ""):
        self.instr = instr
        self.unit = unit
        loc = f"{unit}:{instr.line_num}: " if instr is not None else ""
        super().__init__(f"{loc}{message}")


Template = Callable[[Instruction, tpl.UnitContext], List[str]]

TEMPLATES: Dict[type, Template] = {
    PushConstant: lambda i, ctx: tpl.push_constant(i.value),
    PushSegment: lambda i, ctx: tpl.push_segment(i.segment, i.offset),
    PopSegment: lambda i, ctx: tpl.pop_segment(i.segment, i.offset),
    PushStatic: lambda i, ctx: tpl.push_static(ctx.unit, i.offset),
    PopStatic: lambda i, ctx: tpl.pop_static(ctx.unit, i.offset),
    PushPointer: lambda i, ctx: tpl.push_pointer(i.which),
    PopPointer: lambda i, ctx: tpl.pop_pointer(i.which),
    PushTemp: lambda i, ctx: tpl.push_temp(i.offset),
    PopTemp: lambda i, ctx: tpl.pop_temp(i.offset),
    BinaryOp: lambda i, ctx: tpl.binary_op(i.kind),
    UnaryOp: lambda i, ctx: tpl.unary_op(i.kind),
    CompareOp: lambda i, ctx: tpl.compare_op(i.kind, ctx.labels),
    Label: lambda i, ctx: tpl.label(ctx.function, i.name),
    Goto: lambda i, ctx: tpl.goto(ctx.function, i.name),
    IfGoto: lambda i, ctx: tpl.if_goto(ctx.function, i.name),
    Function: lambda i, ctx: tpl.function(i.name, i.local_count),
    Return: lambda i, ctx: tpl.return_(),
    Call: lambda i, ctx: tpl.call(i.name, i.arg_count, ctx.labels),
}


class Translator:
    """Translates VM units into one Hack assembly program.

    Args:
        labels: Shared label counters (a fresh allocator by default).
        profile: Name of a profile in platform.PROFILES.
        strict: Treat unknown opcodes as parse errors instead of skipping them.
        **overrides: bootstrap / stack_base / entry, overriding the profile.
    """

    def __init__(self, labels: Optional[LabelAllocator] = None,
                 profile: str = "standard", strict: bool = False, **overrides):
        self.labels = labels if labels is not None else LabelAllocator()
        self.profile = get_profile(profile)
        self.profile.update({k: v for k, v in overrides.items() if v is not None})
        self.strict = strict
        self._bootstrapped = False
        self.units: List[str] = []

    # ── Entry points ──────────────────────────

    def translate_program(self, units: Iterable[Tuple[str, Sequence[str]]]) -> List[str]:
        """Translate (unit name, VM lines) pairs in the given order."""
        out: List[str] = []
        for name, lines in units:
            out.extend(self.translate_unit(name, lines))
        return out

    def translate_unit(self, unit: str, lines: Iterable[str]) -> List[str]:
        """Translate one unit. The first unit is preceded by the bootstrap."""
        out: List[str] = []
        if not self._bootstrapped and self.profile["bootstrap"]:
            out.extend(self._bootstrap())

        parser = LineParser(unit, strict=self.strict)
        ctx = tpl.UnitContext(unit=unit, labels=self.labels)
        count = 0
        start = len(out)
        for instr in parser.parse_lines(lines):
            out.extend(self.translate_instruction(instr, ctx))
            count += 1

        # Only a unit that translated completely counts as the first one
        self._bootstrapped = True
        self.units.append(unit)
        log.info("Translated %s: %d instructions -> %d lines (%d skipped)",
                 unit, count, len(out) - start, len(parser.skipped))
        return out

    def translate_instruction(self, instr: Instruction, ctx: tpl.UnitContext) -> List[str]:
        template = TEMPLATES.get(type(instr))
        if template is None:
            raise TranslationError(f"No template for {type(instr).__name__}", instr, ctx.unit)
        if isinstance(instr, Function):
            ctx.function = instr.name
        return tpl.frame(str(instr), template(instr, ctx))

    # ── Bootstrap ─────────────────────────────

    def _bootstrap(self) -> List[str]:
        stack_base = self.profile["stack_base"]
        entry = self.profile["entry"]
        log.debug("Bootstrap: SP=%d, call %s", stack_base, entry)
        return tpl.frame(f"bootstrap SP={stack_base} call {entry}",
                         tpl.bootstrap(stack_base, entry, self.labels))


def translate_source(source: str, unit: str = "Main", **kwargs) -> str:
    """Translate VM source text of a single unit to assembly text."""
    translator = Translator(**kwargs)
    return "\n".join(translator.translate_unit(unit, source.splitlines())) + "\n"
