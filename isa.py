"""ISA: opcodes, addressing modes and the instruction decoder."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import NamedTuple


class OpCode(IntEnum):
    """Keeps opcodes from all operations."""

    ADD = 1  # MEM[dst] = a + b
    MUL = 2  # MEM[dst] = a * b
    INPUT = 3  # MEM[dst] = int(readline())
    OUTPUT = 4  # write a
    JUMP_IF_TRUE = 5
    JUMP_IF_FALSE = 6
    LESS_THAN = 7  # MEM[dst] = a < b
    EQUALS = 8  # MEM[dst] = a == b
    HALT = 99


class ParamMode(IntEnum):
    """Addressing mode of a single parameter."""

    POSITION = 0
    IMMEDIATE = 1


class InstructionSet(Enum):
    """Selectable instruction-set variants."""

    BASIC = "basic"  # 1, 2, 99 and no mode digits
    EXTENDED = "extended"


PARAM_COUNT: dict[OpCode, int] = {
    OpCode.ADD: 3,
    OpCode.MUL: 3,
    OpCode.INPUT: 1,
    OpCode.OUTPUT: 1,
    OpCode.JUMP_IF_TRUE: 2,
    OpCode.JUMP_IF_FALSE: 2,
    OpCode.LESS_THAN: 3,
    OpCode.EQUALS: 3,
    OpCode.HALT: 0,
}

# opcodes whose last parameter is a write address
WRITES_LAST: frozenset[OpCode] = frozenset(
    {OpCode.ADD, OpCode.MUL, OpCode.INPUT, OpCode.LESS_THAN, OpCode.EQUALS}
)

OPCODES: dict[InstructionSet, frozenset[OpCode]] = {
    InstructionSet.BASIC: frozenset({OpCode.ADD, OpCode.MUL, OpCode.HALT}),
    InstructionSet.EXTENDED: frozenset(OpCode),
}


class DecodeError(ValueError):
    """Raised when an instruction word cannot be decoded."""

    pass


class Instruction(NamedTuple):
    """Decoded instruction word."""

    opcode: OpCode
    modes: tuple[ParamMode, ...]

    @property
    def size(self) -> int:
        """Words occupied by the instruction including its parameters."""
        return len(self.modes) + 1

    def is_write(self, index: int) -> bool:
        """Return True if parameter `index` (0-based) is a write address."""
        return self.opcode in WRITES_LAST and index == len(self.modes) - 1


def decode_instr(word: int, instruction_set: InstructionSet = InstructionSet.EXTENDED) -> Instruction:
    """Decode an instruction word.

    Low two decimal digits are the opcode, every higher digit is the mode
    of one parameter (hundreds -> 1st, thousands -> 2nd, ...).
    The mode digit of a write parameter is ignored.

    Raises DecodeError on unknown opcodes and bad mode digits.
    """
    if word < 0:
        err = f"Negative instruction word {word}"
        raise DecodeError(err)
    try:
        opcode = OpCode(word % 100)
    except ValueError as e:
        err = f"Unrecognized opcode {word % 100} (instruction {word})"
        raise DecodeError(err) from e
    if opcode not in OPCODES[instruction_set]:
        err = f"Opcode {opcode.name} not in {instruction_set.value} instruction set"
        raise DecodeError(err)
    if instruction_set is InstructionSet.BASIC and word >= 100:
        err = f"Addressing modes not supported in basic instruction set (instruction {word})"
        raise DecodeError(err)

    count = PARAM_COUNT[opcode]
    modes: list[ParamMode] = []
    for p in range(1, count + 1):
        digit = (word // 10 ** (p + 1)) % 10
        if opcode in WRITES_LAST and p == count:
            # destination is always an address
            modes.append(ParamMode.POSITION)
            continue
        try:
            modes.append(ParamMode(digit))
        except ValueError as e:
            err = f"Bad mode digit {digit} for parameter {p} (instruction {word})"
            raise DecodeError(err) from e
    return Instruction(opcode, tuple(modes))


def mnemonic(instr: Instruction, params: list[int] | tuple[int, ...]) -> str:
    """Get operation mnemonic.

    Position-mode operands and destinations are shown in brackets.
    """
    parts = [instr.opcode.name]
    for mode, value in zip(instr.modes, params):
        if mode == ParamMode.IMMEDIATE:
            parts.append(str(value))
        else:
            parts.append(f"[{value}]")
    return " ".join(parts)


def disassemble(memory: list[int], instruction_set: InstructionSet = InstructionSet.EXTENDED) -> list[str]:
    """Linear-sweep disassembly starting at position 0.

    Stops at the first word that doesn't decode (or a truncated
    instruction) and dumps the remainder on that line.
    """
    lines: list[str] = []
    pc = 0
    while pc < len(memory):
        try:
            instr = decode_instr(memory[pc], instruction_set)
            if pc + instr.size > len(memory):
                err = f"truncated {instr.opcode.name}"
                raise DecodeError(err)
        except DecodeError as e:
            rest = ",".join(str(w) for w in memory[pc:])
            lines.append(f"{pc} - {rest} - <decode error: {e}>")
            break
        words = memory[pc : pc + instr.size]
        raw = ",".join(str(w) for w in words)
        lines.append(f"{pc} - {raw} - {mnemonic(instr, words[1:])}")
        pc += instr.size
    return lines
