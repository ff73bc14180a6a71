#!/usr/bin/env python3
"""
hackkit — Hack VM Toolkit
=========================

One CLI for the toolchain:
    hackkit translate — Translate a .vm file or a directory of .vm files to .asm
    hackkit asm       — Assemble Hack assembly to .hack
    hackkit run       — Translate/assemble if needed, run on the emulator

Usage:
    python hackkit.py <command> [options]
    python hackkit.py <command> --help

Examples:
    python hackkit.py translate StackTest.vm --profile bare
    python hackkit.py translate FibonacciElement/        # -> FibonacciElement/FibonacciElement.asm
    python hackkit.py asm Prog.asm -o Prog.hack --listing
    python hackkit.py run FibonacciElement/ --steps 200000 --dump 256:8
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

from hackvm import __version__
from hackvm.assembler import Assembler, AssemblerError
from hackvm.emulator import HackEmulator
from hackvm.log import setup_logging
from hackvm.parser import ParseError
from hackvm.platform import PROFILES
from hackvm.translator import Translator, TranslationError

log = logging.getLogger("hackvm.cli")


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...) or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    return int(value)


def collect_units(path: Path) -> Tuple[List[Tuple[str, List[str]]], Path]:
    """Return ([(unit name, lines)], default .asm output path) for a file or directory.

    Directory contents are taken in sorted order so label numbering is
    reproducible.
    """
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix == ".vm" and p.is_file())
        if not files:
            raise FileNotFoundError(f"No .vm files in {path}")
        out = path / f"{path.resolve().name}.asm"
    elif path.suffix == ".vm":
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        files = [path]
        out = path.with_suffix(".asm")
    else:
        raise ValueError(f"Not a .vm file or directory: {path}")

    units = []
    for f in files:
        units.append((f.stem, f.read_text(encoding="utf-8").splitlines()))
        log.debug("Unit %s <- %s", f.stem, f)
    return units, out


def _translator(args) -> Translator:
    stack = parse_int_arg(args.stack) if args.stack else None
    bootstrap = False if args.no_bootstrap else None
    return Translator(profile=args.profile, strict=args.strict,
                      stack_base=stack, entry=args.entry, bootstrap=bootstrap)


def _write_lines(path: Path, lines: List[str]):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


# ── Commands ────────────────────────────────────

def cmd_translate(args) -> int:
    units, default_out = collect_units(Path(args.input))
    lines = _translator(args).translate_program(units)
    out = Path(args.output) if args.output else default_out
    _write_lines(out, lines)
    log.info("Wrote %s (%d lines, %d units)", out, len(lines), len(units))
    return 0


def cmd_asm(args) -> int:
    src = Path(args.input)
    assembler = Assembler()
    assembler.assemble(src.read_text(encoding="utf-8"))
    out = Path(args.output) if args.output else src.with_suffix(".hack")
    out.write_text(assembler.to_hack(), encoding="utf-8")
    log.info("Wrote %s (%d words)", out, len(assembler.words))
    if args.listing:
        print(assembler.get_listing())
    return 0


def cmd_run(args) -> int:
    path = Path(args.input)
    if path.suffix == ".asm":
        asm_text = path.read_text(encoding="utf-8")
    elif path.suffix == ".hack":
        asm_text = None
    else:
        units, _ = collect_units(path)
        asm_text = "\n".join(_translator(args).translate_program(units))

    emu = HackEmulator()
    if asm_text is None:
        emu.load_hack(path.read_text(encoding="utf-8"))
    else:
        assembler = Assembler()
        emu.load_words(assembler.assemble(asm_text))

    reason = emu.run(max_steps=args.steps)
    print(f"Stopped: {reason.value} after {emu.steps} steps")
    print(emu.display())

    for item in args.dump or []:
        start_text, _, count_text = item.partition(":")
        start = parse_int_arg(start_text)
        count = parse_int_arg(count_text) if count_text else 1
        for addr in range(start, start + count):
            print(f"RAM[{addr:5d}] = {HackEmulator.signed(emu.peek(addr))}")
    return 0


def _add_translation_options(p: argparse.ArgumentParser):
    p.add_argument("--profile", default="standard", choices=list(PROFILES.keys()),
                   help="Translation profile (default: standard)")
    p.add_argument("--stack", default=None, help="Stack base address (default: 256)")
    p.add_argument("--entry", default=None, help="Entry function (default: Sys.init)")
    p.add_argument("--no-bootstrap", action="store_true", help="Do not emit the bootstrap")
    p.add_argument("--strict", action="store_true",
                   help="Reject unknown commands instead of skipping them")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hackkit",
        description="Hack VM Toolkit — translate, assemble, run",
        epilog="Profiles: " + ", ".join(f"{k} ({v['description']})" for k, v in PROFILES.items()),
    )
    parser.add_argument("--version", action="version", version=f"hackkit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress to stderr (-vv for debug)")
    parser.add_argument("--log-dir", default=None, help="Also write a log file here")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── translate ───────────────────────────────────────────────────────
    p_tr = sub.add_parser("translate", help="Translate VM code to Hack assembly")
    p_tr.add_argument("input", help="Input .vm file or directory")
    p_tr.add_argument("-o", "--output", help="Output .asm file")
    _add_translation_options(p_tr)

    # ── asm ─────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", help="Assemble Hack assembly to .hack")
    p_asm.add_argument("input", help="Input .asm file")
    p_asm.add_argument("-o", "--output", help="Output .hack file")
    p_asm.add_argument("--listing", action="store_true", help="Print listing to stdout")

    # ── run ─────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a program on the emulator")
    p_run.add_argument("input", help=".vm file, directory, .asm or .hack file")
    p_run.add_argument("--steps", type=int, default=HackEmulator.DEFAULT_MAX_STEPS,
                       help="Maximum instructions to execute")
    p_run.add_argument("--dump", action="append", metavar="ADDR[:COUNT]",
                       help="Print RAM words after the run (repeatable)")
    _add_translation_options(p_run)

    return parser


COMMANDS = {
    "translate": cmd_translate,
    "asm": cmd_asm,
    "run": cmd_run,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging("hackvm", console_level=console_level, log_dir=args.log_dir)

    try:
        return COMMANDS[args.command](args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"I/O error: {e}", file=sys.stderr)
        return 1
    except ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 1
    except TranslationError as e:
        print(f"Translation error: {e}", file=sys.stderr)
        return 1
    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
