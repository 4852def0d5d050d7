"""Processor (Datapath + ControlUnit) and CLI wrapper.

Executes Intcode memory images: a flat list of integers that holds both
code and data. Provides the interpreter, logging initialization and
optional debug output files (memory_dump.txt / out.hex) emitted when
debug logging is enabled.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Protocol

from config import ConfigError, load_config
from isa import DecodeError, Instruction, InstructionSet, OpCode, ParamMode, decode_instr, disassemble, mnemonic
from loader import INT_RE, LoadError, load_program

LOGFILE = "processor.log"


class ExecutionFault(RuntimeError):
    """Unrecoverable error during a run.

    Raised for unknown opcodes, out-of-range memory accesses and malformed
    runtime input. Memory contents after a fault are not meaningful.
    """

    def __init__(self, message: str, pc: int | None = None) -> None:
        self.pc = pc
        prefix = f"PC {pc}: " if pc is not None else ""
        super().__init__(prefix + message)


class LineSource(Protocol):
    """Anything a line of text can be read from (sys.stdin, io.StringIO, ...)."""

    def readline(self) -> str: ...


class LineSink(Protocol):
    """Anything text can be written to."""

    def write(self, s: str, /) -> Any: ...


def init_logging(logfile: str = LOGFILE, debug: bool = False, console: bool = False) -> None:
    """Configure root logger to write to `logfile`.

    If debug=True set DEBUG level. If console=True also echo logs to stderr.

    The debug format carries no timestamp or line number so that traces of
    the same program are byte-for-byte reproducible:
        DEBUG root TICK:    0 PC:     0 INSTR: ADD [0] [0] [0]
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    lvl = logging.DEBUG if debug else logging.CRITICAL
    root.setLevel(lvl)

    if debug:
        file_fmt = "%(levelname)s %(name)s %(message)s"
    else:
        file_fmt = "%(levelname)-5s %(message)s"

    # always create a FileHandler even when not debug to allow easier inspection if asked
    fh = logging.FileHandler(logfile, mode="w", encoding="utf-8")
    fh.setLevel(lvl)
    fh.setFormatter(logging.Formatter(file_fmt))
    root.addHandler(fh)

    if debug and console:
        # console goes to stderr so it doesn't mix with program output
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(lvl)
        ch.setFormatter(logging.Formatter("%(levelname)5s %(message)s"))
        root.addHandler(ch)


# --- debug output helpers ---
def _flush_logging_handlers() -> None:
    for h in list(logging.getLogger().handlers):
        h.flush()


def _write_memory_dump(memory: list[int], path: str = "memory_dump.txt") -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            for i, w in enumerate(memory):
                f.write(f"{i:08d}: {w}\n")
    except OSError as e:
        logging.debug("Failed to write %s: %s", path, e)


def _write_out_hex(program: list[int], instruction_set: InstructionSet, path: str = "out.hex") -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(disassemble(program, instruction_set)))
    except OSError as e:
        logging.debug("Failed to write %s: %s", path, e)


def _write_debug_out_files(program: list[int], memory: list[int], instruction_set: InstructionSet) -> None:
    _flush_logging_handlers()
    _write_memory_dump(memory)
    _write_out_hex(program, instruction_set)


class Datapath:
    """Datapath (memory + program counter + I/O collaborators) for the VM."""

    memory: list[int]
    PC: int
    tick: int
    input_stream: LineSource
    output_stream: LineSink
    output_buffer: list[int]

    def __init__(
        self,
        memory: list[int],
        input_stream: LineSource | None = None,
        output_stream: LineSink | None = None,
    ) -> None:
        """Bind `memory` (mutated in place) and the I/O streams."""
        self.memory = memory
        self.PC = 0
        self.tick = 0
        self.input_stream = input_stream if input_stream is not None else sys.stdin
        self.output_stream = output_stream if output_stream is not None else sys.stdout
        self.output_buffer = []

    def _check_addr(self, addr: int, what: str) -> None:
        if not 0 <= addr < len(self.memory):
            err = f"{what} out of memory: address {addr} (size {len(self.memory)})"
            raise ExecutionFault(err, self.PC)

    def read_word(self, addr: int) -> int:
        """Read a word. Raises ExecutionFault for out-of-range addresses."""
        self._check_addr(addr, "read")
        return self.memory[addr]

    def write_word(self, addr: int, value: int) -> None:
        """Write a word. Raises ExecutionFault for out-of-range addresses."""
        self._check_addr(addr, "write")
        self.memory[addr] = value

    def read_input(self) -> int:
        """Read exactly one line from the input stream and parse it."""
        line = self.input_stream.readline()
        if not line:
            err = "input closed (EOF) while reading"
            raise ExecutionFault(err, self.PC)
        tok = line.strip()
        if not INT_RE.fullmatch(tok):
            err = f"malformed input line {line!r}"
            raise ExecutionFault(err, self.PC)
        try:
            value = int(tok)
        except ValueError as e:
            err = f"malformed input line: {e}"
            raise ExecutionFault(err, self.PC) from e
        logging.debug("[IN] read %d", value)
        return value

    def write_output(self, value: int) -> None:
        """Write one line with the decimal value to the output stream."""
        self.output_stream.write(f"{value}\n")
        self.output_buffer.append(value)
        logging.debug("[OUT] wrote %d", value)


class ControlUnit:
    """Control unit implementing the FETCH-DECODE-EXEC loop for the Datapath."""

    dp: Datapath
    instruction_set: InstructionSet
    trace: bool

    def __init__(
        self,
        dp: Datapath,
        instruction_set: InstructionSet = InstructionSet.EXTENDED,
        trace: bool = True,
    ) -> None:
        """Create a ControlUnit bound to `dp`."""
        self.dp = dp
        self.instruction_set = instruction_set
        self.trace = trace

    def _log_step(self, instr: Instruction, params: list[int]) -> None:
        if not self.trace or not logging.getLogger().isEnabledFor(logging.DEBUG):
            return
        dp = self.dp
        logging.debug(f"TICK: {dp.tick:4d} PC: {dp.PC:5d} INSTR: {mnemonic(instr, params)}")

    def decode(self) -> tuple[Instruction, list[int]]:
        """Decode the instruction at PC and fetch its raw parameters."""
        dp = self.dp
        word = dp.read_word(dp.PC)
        try:
            instr = decode_instr(word, self.instruction_set)
        except DecodeError as e:
            raise ExecutionFault(str(e), dp.PC) from e
        params = [dp.read_word(dp.PC + 1 + i) for i in range(len(instr.modes))]
        return instr, params

    def operand(self, instr: Instruction, params: list[int], index: int) -> int:
        """Resolve read parameter `index` according to its addressing mode."""
        if instr.modes[index] == ParamMode.IMMEDIATE:
            return params[index]
        return self.dp.read_word(params[index])

    def run(self) -> list[int]:
        """Execute the datapath until HALT. Returns the (mutated) memory."""
        dp = self.dp
        logging.debug(
            "ControlUnit: start, %d words, instruction set %s",
            len(dp.memory),
            self.instruction_set.value,
        )
        while True:
            instr, params = self.decode()
            self._log_step(instr, params)
            if instr.opcode == OpCode.HALT:
                logging.debug("HALT at PC %d (tick %d)", dp.PC, dp.tick)
                break
            dp.PC = self.exec(instr, params)
            dp.tick += 1
        return dp.memory

    def exec(self, instr: Instruction, params: list[int]) -> int:  # noqa: C901
        """Execute a single instruction and return the next PC."""
        dp = self.dp
        opcode = instr.opcode
        next_pc = dp.PC + instr.size

        if opcode == OpCode.ADD:
            a = self.operand(instr, params, 0)
            b = self.operand(instr, params, 1)
            dp.write_word(params[2], a + b)
            return next_pc
        if opcode == OpCode.MUL:
            a = self.operand(instr, params, 0)
            b = self.operand(instr, params, 1)
            dp.write_word(params[2], a * b)
            return next_pc
        if opcode == OpCode.INPUT:
            dp.write_word(params[0], dp.read_input())
            return next_pc
        if opcode == OpCode.OUTPUT:
            dp.write_output(self.operand(instr, params, 0))
            return next_pc
        if opcode == OpCode.JUMP_IF_TRUE:
            if self.operand(instr, params, 0) != 0:
                return self.operand(instr, params, 1)
            return next_pc
        if opcode == OpCode.JUMP_IF_FALSE:
            if self.operand(instr, params, 0) == 0:
                return self.operand(instr, params, 1)
            return next_pc
        if opcode == OpCode.LESS_THAN:
            a = self.operand(instr, params, 0)
            b = self.operand(instr, params, 1)
            dp.write_word(params[2], 1 if a < b else 0)
            return next_pc
        if opcode == OpCode.EQUALS:
            a = self.operand(instr, params, 0)
            b = self.operand(instr, params, 1)
            dp.write_word(params[2], 1 if a == b else 0)
            return next_pc

        err = f"no handler for {opcode.name}"
        raise ExecutionFault(err, dp.PC)


def run(
    memory: list[int],
    input_stream: LineSource | None = None,
    output_stream: LineSink | None = None,
    instruction_set: InstructionSet = InstructionSet.EXTENDED,
    trace: bool = True,
) -> list[int]:
    """Run `memory` from position 0 until HALT.

    Memory is mutated in place and returned. Streams default to
    sys.stdin / sys.stdout.
    """
    dp = Datapath(memory, input_stream, output_stream)
    cu = ControlUnit(dp, instruction_set=instruction_set, trace=trace)
    return cu.run()


def run_program(
    program: list[int],
    config: dict[str, Any] | None = None,
    input_stream: LineSource | None = None,
    output_stream: LineSink | None = None,
) -> list[int]:
    """Run a fresh copy of `program` with settings from `config`.

    `program` itself is left untouched so it can be reused.
    """
    cfg = load_config(config)
    return run(
        list(program),
        input_stream,
        output_stream,
        instruction_set=cfg["instruction_set"],
        trace=cfg["trace"],
    )


# ---------- CLI ----------
def main(argv: list[str] | None = None) -> int:
    """Command line entry point."""
    ap = argparse.ArgumentParser(
        description="Intcode VM runner. Program file holds comma-separated integers; "
        "input instructions read one line each from stdin, outputs go to stdout."
    )
    ap.add_argument("program", help="path to the program file")
    ap.add_argument("--config", help="path to yaml config", default=None)

    help_debug = "enable debug logging to logfile (per-instruction trace) and dump memory_dump.txt / out.hex."
    help_logfile = "path to processor log"
    help_console = "also echo logs to stderr (only when --debug)"
    ap.add_argument("--debug", action="store_true", help=help_debug)
    ap.add_argument("--logfile", default=LOGFILE, help=help_logfile)
    ap.add_argument("--console", action="store_true", help=help_console)
    args = ap.parse_args(argv)

    init_logging(logfile=args.logfile, debug=args.debug, console=args.console)

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

    # ExecutionFault is not handled here: a faulted run aborts the process
    memory = run_program(program, cfg, sys.stdin, sys.stdout)

    if logging.getLogger().getEffectiveLevel() == logging.DEBUG:
        _write_debug_out_files(program, memory, cfg["instruction_set"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
