"""Bytecode definitions for the PortVM virtual machine."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Iterator, List, Tuple, Union


class OperandKind(Enum):
    """Kind of immediate operand an opcode carries in the instruction stream."""
    NONE = "none"
    INTEGER = "integer"
    TEXT = "text"


def _op(n: int, operand: OperandKind, pops: int, pushes: int) -> Tuple[int, OperandKind, int, int]:
    """Helper to construct an Opcode value: (integer_value, operand_kind, pop_count, push_count).

    pop_count and push_count describe the opcode's effect on the operand stack:
    how many values it consumes and how many it leaves behind.
    """
    return (n, operand, pops, pushes)


class Opcode(IntEnum):
    """Bytecode operation codes.

    Each member's value is an (integer_value, operand_kind, pop_count, push_count) tuple.
    The integer value is used for VM dispatch; the remaining fields are exposed as
    properties so the validator and disassembler share a single description of
    every opcode.
    """

    _operand_kind: OperandKind
    _pop_count: int
    _push_count: int

    def __new__(cls, int_value: int, operand: OperandKind, pops: int, pushes: int) -> 'Opcode':
        obj = int.__new__(cls, int_value)
        obj._value_ = int_value
        obj._operand_kind = operand
        obj._pop_count = pops
        obj._push_count = pushes
        return obj

    @property
    def operand_kind(self) -> OperandKind:
        """Kind of immediate operand this opcode takes."""
        return self._operand_kind

    @property
    def stack_effect(self) -> Tuple[int, int]:
        """(pop_count, push_count) for this opcode."""
        return (self._pop_count, self._push_count)

    HALT = _op(0x00, OperandKind.NONE, 0, 0)        # Stop; single stack value is the result
    PUSH_INT = _op(0x01, OperandKind.INTEGER, 0, 1) # PUSH_INT value
    PUSH_STR = _op(0x02, OperandKind.TEXT, 0, 1)    # PUSH_STR text
    POP = _op(0x03, OperandKind.NONE, 1, 0)         # Discard top of stack
    ADD = _op(0x04, OperandKind.NONE, 2, 1)         # a + b
    SUB = _op(0x05, OperandKind.NONE, 2, 1)         # a - b
    MUL = _op(0x06, OperandKind.NONE, 2, 1)         # a * b
    DIV = _op(0x07, OperandKind.NONE, 2, 1)         # a // b
    CONCAT = _op(0x08, OperandKind.NONE, 2, 1)      # left + right as text
    TO_INT = _op(0x09, OperandKind.NONE, 1, 1)      # Parse decimal text
    DUP = _op(0x0c, OperandKind.NONE, 1, 2)         # Duplicate top of stack
    SWAP = _op(0x0d, OperandKind.NONE, 2, 2)        # Exchange the two topmost values


OperandValue = Union[int, str, None]


@dataclass(frozen=True)
class Instruction:
    """Single bytecode instruction: an opcode and its optional immediate operand."""
    opcode: Opcode
    operand: OperandValue = None

    def __repr__(self) -> str:
        """Disassembly form."""
        name = getattr(self.opcode, "name", repr(self.opcode))
        if self.operand is None:
            return name

        return f"{name} {self.operand!r}"


def halt() -> Instruction:
    return Instruction(Opcode.HALT)


def push_int(value: int) -> Instruction:
    return Instruction(Opcode.PUSH_INT, value)


def push_str(value: str) -> Instruction:
    return Instruction(Opcode.PUSH_STR, value)


def pop() -> Instruction:
    return Instruction(Opcode.POP)


def add() -> Instruction:
    return Instruction(Opcode.ADD)


def sub() -> Instruction:
    return Instruction(Opcode.SUB)


def mul() -> Instruction:
    return Instruction(Opcode.MUL)


def div() -> Instruction:
    return Instruction(Opcode.DIV)


def concat() -> Instruction:
    return Instruction(Opcode.CONCAT)


def to_int() -> Instruction:
    return Instruction(Opcode.TO_INT)


def dup() -> Instruction:
    return Instruction(Opcode.DUP)


def swap() -> Instruction:
    return Instruction(Opcode.SWAP)


@dataclass(frozen=True)
class Program:
    """Compiled program: an immutable, ordered sequence of instructions.

    Programs compare structurally, so two compilations of the same name are equal.
    """
    name: str
    instructions: Tuple[Instruction, ...]

    def __post_init__(self) -> None:
        # Accept any iterable but always store a tuple
        object.__setattr__(self, 'instructions', tuple(self.instructions))

    @classmethod
    def from_instructions(cls, name: str, instructions: Iterable[Instruction]) -> 'Program':
        """Build a program from any iterable of instructions."""
        return cls(name, tuple(instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def __repr__(self) -> str:
        """Human-readable representation."""
        lines = [f"Program: {self.name}"]
        lines.append(f"  Instructions: {len(self.instructions)}")
        for i, instr in enumerate(self.instructions):
            lines.append(f"    {i:3d}: {instr}")

        return "\n".join(lines)

    def disassemble(self) -> List[str]:
        """Return one `index: OPCODE operand` line per instruction."""
        return [f"{i}: {instr}" for i, instr in enumerate(self.instructions)]
