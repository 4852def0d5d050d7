"""Noun/verb search over a patched program.

Positions 1 and 2 of a program are its "noun" and "verb" inputs; after a
run position 0 holds the result.
"""

from __future__ import annotations

import argparse
import logging
import sys

from config import ConfigError, load_config
from isa import InstructionSet
from loader import LoadError, load_program
from processor import LOGFILE, init_logging, run


def patch(program: list[int], noun: int, verb: int) -> list[int]:
    """Write `noun` and `verb` into positions 1 and 2 (in place)."""
    if len(program) < 3:
        err = f"Program too short to patch: {len(program)} words"
        raise ValueError(err)
    program[1] = noun
    program[2] = verb
    return program


def run_patched(
    program: list[int],
    noun: int,
    verb: int,
    instruction_set: InstructionSet = InstructionSet.BASIC,
) -> int:
    """Patch a copy of `program`, run it and return position 0."""
    memory = patch(list(program), noun, verb)
    run(memory, instruction_set=instruction_set, trace=False)
    return memory[0]


def search(
    target: int,
    program: list[int],
    limit: int = 99,
    instruction_set: InstructionSet = InstructionSet.BASIC,
) -> tuple[int, int] | None:
    """Find (noun, verb) in [0, limit) x [0, limit) producing `target`.

    Returns the first match in noun-major order or None.
    """
    for noun in range(limit):
        for verb in range(limit):
            if run_patched(program, noun, verb, instruction_set) == target:
                logging.debug("search: target %d reached with noun=%d verb=%d", target, noun, verb)
                return noun, verb
    logging.debug("search: target %d not reachable within limit %d", target, limit)
    return None


# ---------- CLI ----------
def main(argv: list[str] | None = None) -> int:
    """Command line entry point."""
    ap = argparse.ArgumentParser(description="Patch a program with noun/verb and search for a target output.")
    ap.add_argument("program", help="path to the program file")
    ap.add_argument("--target", type=int, default=None, help="value to search for in position 0")
    ap.add_argument("--config", help="path to yaml config", default=None)
    ap.add_argument("--debug", action="store_true", help="enable debug logging to logfile")
    ap.add_argument("--logfile", default=LOGFILE, help="path to log file")
    args = ap.parse_args(argv)

    init_logging(logfile=args.logfile, debug=args.debug)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print("Bad config:", e)
        return 2

    try:
        program = load_program(args.program)
    except LoadError as e:
        print("failed to load input:", e)
        return 2

    iset = cfg["instruction_set"]
    answer = run_patched(program, cfg["patch_noun"], cfg["patch_verb"], iset)
    print(f"part one answer: {answer}")

    target = args.target if args.target is not None else cfg["search_target"]
    found = search(target, program, cfg["search_limit"], iset)
    if found is None:
        print(f"No input could be found that matches the target {target}")
    else:
        noun, verb = found
        print(f"part two answer: noun:{noun}, verb:{verb}, computed:{100 * noun + verb}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
