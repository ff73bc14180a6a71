"""
Translator tests: template text, label allocation, static naming,
bootstrap placement and the instruction dispatch table.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import re

import pytest
from hackvm.assembler import assemble
from hackvm.instructions import INSTRUCTION_TYPES, Instruction
from hackvm.labels import LabelAllocator
from hackvm.parser import ParseError
from hackvm.templates import UnitContext
from hackvm.translator import TEMPLATES, Translator, TranslationError, translate_source


def _bare(source: str, unit: str = "Main") -> list:
    """Translate without bootstrap, return stripped lines."""
    return [l.strip() for l in translate_source(source, unit, profile="bare").splitlines()]


def _code(lines: list) -> list:
    """Drop comment lines."""
    return [l for l in lines if not l.startswith("//")]


# ─── Label allocator ──────────────────────

class TestLabelAllocator:
    def test_returns_pre_increment_value(self):
        labels = LabelAllocator()
        assert labels.next_comparison() == 0
        assert labels.next_comparison() == 1
        assert labels.comparison == 2

    def test_counters_are_independent(self):
        labels = LabelAllocator()
        labels.next_comparison()
        labels.next_comparison()
        assert labels.next_call_site() == 0
        assert labels.next_comparison() == 2

    def test_translators_do_not_share_state(self):
        a = Translator(profile="bare")
        b = Translator(profile="bare")
        a.translate_unit("Main", ["eq", "eq"])
        assert a.labels.comparison == 2
        assert b.labels.comparison == 0


# ─── Templates ────────────────────────────

class TestTemplates:
    def test_push_constant(self):
        assert _bare("push constant 7") == [
            "// push constant 7",
            "@7", "D=A", "@SP", "A=M", "M=D", "@SP", "M=M+1",
            "// ~push constant 7",
        ]

    def test_push_constant_minus_one_uses_all_ones(self):
        code = _code(_bare("push constant -1"))
        assert code == ["@SP", "A=M", "M=-1", "@SP", "M=M+1"]

    def test_push_negative_constant(self):
        assert _code(_bare("push constant -5"))[:2] == ["@5", "D=-A"]

    def test_push_most_negative_constant(self):
        assert _code(_bare("push constant -32768"))[:3] == ["@32767", "D=-A", "D=D-1"]

    def test_pop_decrements_sp_first(self):
        code = _code(_bare("pop temp 2"))
        assert code[:4] == ["@SP", "M=M-1", "A=M", "D=M"]
        assert code[4:] == ["@R7", "M=D"]

    def test_push_segment_uses_base_pointer(self):
        code = _code(_bare("push argument 3"))
        assert code[:5] == ["@3", "D=A", "@ARG", "A=D+M", "D=M"]

    def test_pop_segment_stages_in_scratch(self):
        code = _code(_bare("pop that 4"))
        assert "@THAT" in code
        assert "@R13" in code and "@R14" in code
        assert code[-3:] == ["@R14", "A=M", "M=D"]

    @pytest.mark.parametrize("which,symbol", [(0, "@THIS"), (1, "@THAT")])
    def test_pointer(self, which, symbol):
        assert _code(_bare(f"push pointer {which}"))[0] == symbol
        assert _code(_bare(f"pop pointer {which}"))[-2] == symbol

    @pytest.mark.parametrize("op,expr", [
        ("add", "M=D+M"), ("sub", "M=D-M"), ("and", "M=D&M"), ("or", "M=D|M"),
    ])
    def test_binary_operator_mapping(self, op, expr):
        assert expr in _bare(op)

    @pytest.mark.parametrize("op,expr", [("neg", "M=-M"), ("not", "M=!M")])
    def test_unary_operator_mapping(self, op, expr):
        assert expr in _bare(op)

    @pytest.mark.parametrize("op,jump", [("eq", "D;JEQ"), ("gt", "D;JGT"), ("lt", "D;JLT")])
    def test_comparison_jump(self, op, jump):
        lines = _bare(op)
        assert "D=D-M" in lines
        assert jump in lines
        tag = op.upper()
        assert f"(IF-{tag}-0)" in lines
        assert f"(END-{tag}-0)" in lines

    def test_comparison_checks_signs_before_subtracting(self):
        code = _code(_bare("gt\nlt"))
        for n, tag in ((0, "GT"), (1, "LT")):
            for prefix in ("NEG", "SUB", "TEST"):
                assert f"({prefix}-{tag}-{n})" in code
        neg = code.index("(NEG-GT-0)")
        assert code[neg - 3:neg] == ["D=1", "@TEST-GT-0", "0;JMP"]
        sub = code.index("(SUB-GT-0)")
        assert code[sub - 3:sub] == ["D=-1", "@TEST-GT-0", "0;JMP"]

    def test_scratch_registers_follow_platform(self):
        from hackvm.platform import SCRATCH
        code = _code(_bare("add"))
        assert f"@R{SCRATCH[0]}" in code and f"@R{SCRATCH[1]}" in code
        assert f"@R{SCRATCH[2]}" not in code

    def test_function_pushes_zero_per_local(self):
        code = _code(_bare("function Main.f 3"))
        assert code[0] == "(Main.f)"
        assert code.count("@0") == 3
        assert code.count("M=M+1") == 3

    def test_function_without_locals(self):
        assert _code(_bare("function Main.g 0")) == ["(Main.g)"]

    def test_call_sets_arg_below_frame_and_args(self):
        code = _code(_bare("call Math.multiply 2"))
        # ARG = SP - 5 - 2
        assert "@7" in code
        assert code[-3:] == ["@Math.multiply", "0;JMP", "(RET-0)"]
        assert code[0] == "@RET-0"

    def test_call_saves_frame_in_order(self):
        code = _code(_bare("call F 0"))
        saved = [l for l in code if l in ("@LCL", "@ARG", "@THIS", "@THAT")]
        assert saved[:4] == ["@LCL", "@ARG", "@THIS", "@THAT"]

    def test_return_jumps_to_saved_address(self):
        code = _code(_bare("return"))
        assert code[:4] == ["@LCL", "D=M", "@R13", "M=D"]
        assert code[-3:] == ["@R14", "A=M", "0;JMP"]

    def test_block_framing(self):
        lines = _bare("push local 0\nadd")
        comments = [l for l in lines if l.startswith("//")]
        assert comments == ["// push local 0", "// ~push local 0", "// add", "// ~add"]


# ─── Label uniqueness ─────────────────────

class TestLabelUniqueness:
    def test_two_comparisons_distinct_labels(self):
        lines = _bare("eq\neq")
        assert "(IF-EQ-0)" in lines and "(IF-EQ-1)" in lines
        assert "(END-EQ-0)" in lines and "(END-EQ-1)" in lines

    def test_comparison_counter_shared_across_kinds(self):
        lines = _bare("gt\nlt")
        assert "(IF-GT-0)" in lines
        assert "(IF-LT-1)" in lines

    def test_counters_continue_across_units(self):
        t = Translator(profile="bare")
        out = t.translate_program([
            ("A", ["eq", "call B.f 0"]),
            ("B", ["eq", "call A.f 0"]),
        ])
        assert "(IF-EQ-0)" in out and "(IF-EQ-1)" in out
        assert "    (RET-0)" not in out  # labels are not indented
        assert "(RET-0)" in out and "(RET-1)" in out

    def test_multi_unit_output_assembles(self):
        t = Translator(profile="bare")
        out = t.translate_program([
            ("A", ["function A.f 0", "push constant 1", "push constant 1", "eq", "return"]),
            ("B", ["function B.f 0", "push constant 1", "push constant 2", "eq", "return"]),
        ])
        assemble("\n".join(out))  # no duplicate label

    def test_labels_scoped_to_function(self):
        lines = _bare("function Main.a 0\nlabel LOOP\ngoto LOOP\n"
                      "function Main.b 0\nlabel LOOP\nif-goto LOOP")
        assert "(Main.a$LOOP)" in lines
        assert "(Main.b$LOOP)" in lines
        assert "@Main.a$LOOP" in lines
        assert "@Main.b$LOOP" in lines

    def test_label_outside_function_unqualified(self):
        assert "(LOOP)" in _bare("label LOOP")


# ─── Static addressing ────────────────────

class TestStaticAddressing:
    def test_same_unit_same_symbol(self):
        lines = _bare("push static 3\npush static 3", unit="Foo")
        assert lines.count("@Foo.3") == 2

    def test_different_units_different_symbols(self):
        t = Translator(profile="bare")
        a = t.translate_unit("Foo", ["push static 3"])
        b = t.translate_unit("Bar", ["push static 3"])
        assert "    @Foo.3" in a
        assert "    @Bar.3" in b

    def test_case_only_difference_distinct_addresses(self):
        t = Translator(profile="bare")
        out = t.translate_program([("main", ["push static 3"]), ("Main", ["push static 3"])])
        from hackvm.assembler import Assembler
        asm = Assembler()
        asm.assemble("\n".join(out))
        assert asm.variables["main.3"] != asm.variables["Main.3"]


# ─── Bootstrap ────────────────────────────

class TestBootstrap:
    def test_bootstrap_first(self):
        lines = translate_source("push constant 1").splitlines()
        assert lines[0].startswith("// bootstrap")
        code = [l.strip() for l in lines[1:5]]
        assert code == ["@256", "D=A", "@SP", "M=D"]
        assert "    @Sys.init" in lines

    def test_bootstrap_once_per_program(self):
        t = Translator()
        out = t.translate_program([("A", ["add"]), ("B", ["add"]), ("C", ["add"])])
        assert sum(1 for l in out if l.startswith("// bootstrap")) == 1
        assert out[0].startswith("// bootstrap")

    def test_bootstrap_uses_call_counter(self):
        t = Translator()
        out = t.translate_unit("Main", ["call Main.f 0"])
        assert "(RET-0)" in out  # bootstrap's return site
        assert "(RET-1)" in out

    def test_bootstrap_kept_after_failed_first_unit(self):
        t = Translator()
        with pytest.raises(ParseError):
            t.translate_unit("Bad", ["push nowhere 1"])
        out = t.translate_unit("Sys", ["function Sys.init 0"])
        assert out[0].startswith("// bootstrap")
        out = t.translate_unit("Main", ["add"])
        assert not any(l.startswith("// bootstrap") for l in out)

    def test_bare_profile_has_no_bootstrap(self):
        assert not any("bootstrap" in l for l in _bare("add"))

    def test_overrides(self):
        t = Translator(stack_base=300, entry="Main.main")
        out = [l.strip() for l in t.translate_unit("Main", [])]
        assert "@300" in out
        assert "@Main.main" in out

    def test_none_override_keeps_profile(self):
        t = Translator(stack_base=None, entry=None)
        assert t.profile["stack_base"] == 256
        assert t.profile["entry"] == "Sys.init"


# ─── Driver ───────────────────────────────

class TestDriver:
    def test_every_instruction_type_has_template(self):
        assert set(INSTRUCTION_TYPES) == set(TEMPLATES)

    def test_unknown_instruction_type_raises(self):
        class Bogus(Instruction):
            pass

        t = Translator(profile="bare")
        ctx = UnitContext("Main", t.labels)
        with pytest.raises(TranslationError):
            t.translate_instruction(Bogus(line_num=3), ctx)

    def test_malformed_line_aborts_unit(self):
        t = Translator(profile="bare")
        with pytest.raises(ParseError) as exc_info:
            t.translate_unit("Main", ["push constant 1", "foo bar baz", "add"])
        assert exc_info.value.line_num == 2

    def test_unknown_single_token_skipped(self):
        lines = _bare("push constant 1\nhalt\nadd")
        assert "// add" in lines
        assert not any("halt" in l for l in lines)

    def test_strict_mode(self):
        t = Translator(profile="bare", strict=True)
        with pytest.raises(ParseError):
            t.translate_unit("Main", ["halt"])

    def test_units_recorded(self):
        t = Translator(profile="bare")
        t.translate_program([("A", []), ("B", [])])
        assert t.units == ["A", "B"]

    def test_output_is_valid_assembly(self):
        src = "\n".join([
            "function Main.main 2", "push constant 7", "pop local 0", "push local 0",
            "push static 1", "lt", "if-goto X", "push pointer 0", "pop pointer 1",
            "push temp 3", "not", "neg", "label X", "call Main.main 0", "return",
        ])
        words = assemble(translate_source(src))
        assert len(words) > 0
        assert all(0 <= w <= 0xFFFF for w in words)

    def test_no_spaces_inside_instructions(self):
        for line in _code(_bare("push local 1\npop local 2\neq\ncall F 1\nreturn")):
            assert re.fullmatch(r"\S+", line), line
