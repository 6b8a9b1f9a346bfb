"""PortVM Virtual Machine - executes straight-line bytecode."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from portvm.portvm_bytecode import Instruction, OperandKind, Opcode, Program
from portvm.portvm_error import (
    ArithmeticOverflowError, DivisionByZeroError, IncompleteProgramError, InvalidInstructionError,
    ParseError, StackUnderflowError, TypeMismatchError, VmExecutionError
)
from portvm.portvm_trace import PortVMTraceWatcher
from portvm.portvm_value import PortVMValue, PortVMInteger, PortVMText, in_int64_range, INT64_MAX, INT64_MIN


# TO_INT accepts ASCII digits only: no sign, whitespace, underscores or other scripts' digits
_DECIMAL_LITERAL = re.compile(r'[0-9]+')

# TO_INT literals with more significant digits than INT64_MAX cannot fit in 64 bits
_INT64_MAX_DIGITS = len(str(INT64_MAX))


class VMState(Enum):
    """Lifecycle of a single execution."""
    RUNNING = "running"
    HALTED = "halted"
    FAULTED = "faulted"


@dataclass
class ExecutionState:
    """
    Mutable state for one execution of one program.

    A fresh state is created for every call to PortVM.run, so a single VM
    instance can be used from several threads at once.
    """
    program: Program
    pc: int = 0  # Program counter
    steps: int = 0  # Instructions executed so far
    stack: List[PortVMValue] = field(default_factory=list)
    max_stack_depth: int = 0
    halt_index: Optional[int] = None  # Index of the explicit HALT, if one was reached
    state: VMState = VMState.RUNNING


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a successful execution."""
    value: int
    steps: int
    max_stack_depth: int
    state: VMState


class PortVM:
    """
    Virtual machine for executing PortVM bytecode.

    Uses a stack-based architecture with a single linear program counter.
    There are no jumps, so every program finishes in at most len(program)
    steps.
    """

    def __init__(self, trace_watcher: Optional[PortVMTraceWatcher] = None) -> None:
        """
        Initialize the VM.

        Args:
            trace_watcher: Optional watcher notified after every executed instruction
        """
        self.trace_watcher = trace_watcher
        self._logger = logging.getLogger("PortVM")

        # Opcode-indexed handler table for dispatch
        self._dispatch_table = self._build_dispatch_table()

    def set_trace_watcher(self, watcher: Optional[PortVMTraceWatcher]) -> None:
        """
        Set the trace watcher (replaces any existing watcher).

        Args:
            watcher: PortVMTraceWatcher instance or None to disable tracing
        """
        self.trace_watcher = watcher

    def _build_dispatch_table(self) -> List[Any]:
        """Build jump table for opcode dispatch."""
        table: List[Any] = [None] * (max(Opcode) + 1)
        table[Opcode.HALT] = self._op_halt
        table[Opcode.PUSH_INT] = self._op_push_int
        table[Opcode.PUSH_STR] = self._op_push_str
        table[Opcode.POP] = self._op_pop
        table[Opcode.ADD] = self._op_add
        table[Opcode.SUB] = self._op_sub
        table[Opcode.MUL] = self._op_mul
        table[Opcode.DIV] = self._op_div
        table[Opcode.CONCAT] = self._op_concat
        table[Opcode.TO_INT] = self._op_to_int
        table[Opcode.DUP] = self._op_dup
        table[Opcode.SWAP] = self._op_swap
        return table

    def execute(self, program: Program) -> int:
        """
        Execute a program and return its integer result.

        Args:
            program: Program to execute

        Returns:
            The single integer left on the stack at HALT

        Raises:
            VmExecutionError: If execution faults
        """
        return self.run(program).value

    def run(self, program: Program) -> ExecutionResult:
        """
        Execute a program and return its result together with execution statistics.

        Args:
            program: Program to execute

        Returns:
            Execution result, including the number of steps taken

        Raises:
            VmExecutionError: If execution faults
        """
        state = ExecutionState(program)

        try:
            self._execute(state)
            value = self._final_value(state)

        except VmExecutionError as e:
            state.state = VMState.FAULTED
            e.execution_state = state
            self._logger.debug("Program '%s' faulted after %d steps: %s", program.name, state.steps, e.message)
            raise

        state.state = VMState.HALTED
        return ExecutionResult(
            value=value,
            steps=state.steps,
            max_stack_depth=state.max_stack_depth,
            state=state.state
        )

    def _execute(self, state: ExecutionState) -> None:
        """Run instructions until HALT or the end of the program."""
        dispatch = self._dispatch_table
        instructions = state.program.instructions

        while state.pc < len(instructions):
            index = state.pc
            instr = instructions[index]

            if not isinstance(instr, Instruction) or not isinstance(instr.opcode, Opcode):
                raise InvalidInstructionError(
                    message=f"Unknown instruction: {instr!r}",
                    instruction_index=index
                )

            if instr.opcode.operand_kind == OperandKind.NONE and instr.operand is not None:
                raise InvalidInstructionError(
                    message=f"{instr.opcode.name} takes no operand",
                    received=repr(instr.operand),
                    instruction_index=index,
                    opcode=instr.opcode.name
                )

            state.pc += 1
            state.steps += 1

            halted = dispatch[instr.opcode](state, instr, index)

            state.max_stack_depth = max(state.max_stack_depth, len(state.stack))
            if self.trace_watcher is not None:
                self._emit_trace(state, instr, index)

            if halted:
                return

    def _emit_trace(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """Describe the instruction just executed and the resulting stack to the watcher."""
        assert self.trace_watcher is not None
        stack_str = ", ".join(value.describe() for value in state.stack)
        self.trace_watcher.on_trace(f"{index}: {instr!r} -> [{stack_str}]")

    def _final_value(self, state: ExecutionState) -> int:
        """Extract the program result once execution has stopped."""
        index = state.halt_index if state.halt_index is not None else len(state.program.instructions)
        opcode = Opcode.HALT.name if state.halt_index is not None else None
        depth = len(state.stack)
        if depth != 1:
            raise IncompleteProgramError(
                message=f"Program '{state.program.name}' ended with {depth} values on the stack",
                expected="Exactly one value at HALT",
                received=f"Stack: [{', '.join(value.describe() for value in state.stack)}]",
                instruction_index=index,
                opcode=opcode
            )

        result = state.stack[0]
        if not isinstance(result, PortVMInteger):
            raise TypeMismatchError(
                message="Program result must be an integer",
                received=f"{result.describe()} ({result.type_name()})",
                expected="integer",
                suggestion="End the program with TO_INT to convert text to an integer",
                instruction_index=index,
                opcode=opcode
            )

        return result.value

    def _pop(self, state: ExecutionState, instr: Instruction, index: int, count: int) -> List[PortVMValue]:
        """
        Pop count values, returned in push order (deepest first).

        Raises:
            StackUnderflowError: If the stack holds fewer than count values
        """
        depth = len(state.stack)
        if depth < count:
            raise StackUnderflowError(
                message=f"{instr.opcode.name} needs {count} operand{'s' if count != 1 else ''}, stack has {depth}",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        values = state.stack[-count:]
        del state.stack[-count:]
        return values

    def _pop_integers(self, state: ExecutionState, instr: Instruction, index: int) -> List[int]:
        """Pop two integer operands (a, b) for a binary arithmetic instruction."""
        operands = []
        for value in self._pop(state, instr, index, 2):
            if not isinstance(value, PortVMInteger):
                raise TypeMismatchError(
                    message=f"{instr.opcode.name} requires integer operands",
                    received=f"{value.describe()} ({value.type_name()})",
                    expected="integer",
                    instruction_index=index,
                    opcode=instr.opcode.name
                )

            operands.append(value.value)

        return operands

    def _push_checked(self, state: ExecutionState, result: int, instr: Instruction, index: int) -> None:
        """Push an integer result, faulting if it leaves the 64-bit range."""
        if not in_int64_range(result):
            raise ArithmeticOverflowError(
                message=f"{instr.opcode.name} result {result} overflows 64-bit signed integer",
                context=f"Valid range is {INT64_MIN} to {INT64_MAX}",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        state.stack.append(PortVMInteger(result))

    def _op_halt(self, state: ExecutionState, _instr: Instruction, index: int) -> bool:
        """HALT: Stop execution."""
        state.halt_index = index
        return True

    def _op_push_int(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """PUSH_INT: Push integer literal."""
        operand = instr.operand
        if not isinstance(operand, int) or isinstance(operand, bool):
            raise InvalidInstructionError(
                message="PUSH_INT requires an integer operand",
                received=repr(operand),
                instruction_index=index,
                opcode=instr.opcode.name
            )

        self._push_checked(state, operand, instr, index)

    def _op_push_str(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """PUSH_STR: Push text literal."""
        operand = instr.operand
        if not isinstance(operand, str):
            raise InvalidInstructionError(
                message="PUSH_STR requires a text operand",
                received=repr(operand),
                instruction_index=index,
                opcode=instr.opcode.name
            )

        state.stack.append(PortVMText(operand))

    def _op_pop(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """POP: Discard top of stack."""
        self._pop(state, instr, index, 1)

    def _op_add(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """ADD: Pop b, pop a, push a + b."""
        a, b = self._pop_integers(state, instr, index)
        self._push_checked(state, a + b, instr, index)

    def _op_sub(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """SUB: Pop b, pop a, push a - b."""
        a, b = self._pop_integers(state, instr, index)
        self._push_checked(state, a - b, instr, index)

    def _op_mul(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """MUL: Pop b, pop a, push a * b."""
        a, b = self._pop_integers(state, instr, index)
        self._push_checked(state, a * b, instr, index)

    def _op_div(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """DIV: Pop b, pop a, push a // b."""
        a, b = self._pop_integers(state, instr, index)
        if b == 0:
            raise DivisionByZeroError(
                message="Division by zero",
                context=f"Dividend was {a}",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        self._push_checked(state, a // b, instr, index)

    def _op_concat(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """CONCAT: Pop right, pop left, push left + right as text."""
        parts = []
        for value in self._pop(state, instr, index, 2):
            if isinstance(value, PortVMText):
                parts.append(value.value)

            elif isinstance(value, PortVMInteger):
                parts.append(value.to_text())

            else:
                raise TypeMismatchError(
                    message="CONCAT requires text or integer operands",
                    received=f"{value.describe()} ({value.type_name()})",
                    instruction_index=index,
                    opcode=instr.opcode.name
                )

        state.stack.append(PortVMText("".join(parts)))

    def _op_to_int(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """TO_INT: Pop text, push its value as a base-10 integer."""
        value = self._pop(state, instr, index, 1)[0]
        if not isinstance(value, PortVMText):
            raise TypeMismatchError(
                message="TO_INT requires a text operand",
                received=f"{value.describe()} ({value.type_name()})",
                expected="text",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        if not _DECIMAL_LITERAL.fullmatch(value.value):
            raise ParseError(
                message=f"Cannot parse {value.value!r} as a non-negative base-10 integer",
                expected="One or more ASCII digits",
                received=repr(value.value),
                instruction_index=index,
                opcode=instr.opcode.name
            )

        digits = value.value.lstrip("0")
        if len(digits) > _INT64_MAX_DIGITS:
            raise ArithmeticOverflowError(
                message=f"TO_INT literal with {len(digits)} significant digits overflows 64-bit signed integer",
                context=f"Valid range is {INT64_MIN} to {INT64_MAX}",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        self._push_checked(state, int(digits or "0"), instr, index)

    def _op_dup(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """DUP: Duplicate top of stack."""
        if not state.stack:
            raise StackUnderflowError(
                message="DUP needs 1 operand, stack has 0",
                instruction_index=index,
                opcode=instr.opcode.name
            )

        state.stack.append(state.stack[-1])

    def _op_swap(self, state: ExecutionState, instr: Instruction, index: int) -> None:
        """SWAP: Exchange the two topmost values."""
        a, b = self._pop(state, instr, index, 2)
        state.stack.append(b)
        state.stack.append(a)
