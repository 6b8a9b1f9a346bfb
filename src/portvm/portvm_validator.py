"""
Bytecode validator for PortVM programs.

The validator performs static analysis on a program before it is handed out
by the compiler, so an inconsistent program template is caught at
registration time rather than when somebody first asks for its port.

The validator checks:
- Structural invariants (known opcodes, well-typed immediate operands)
- Integer literals fit in the signed 64-bit range
- Stack depth never underflows and is exactly one at HALT
- No instructions follow the first HALT
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from portvm.portvm_bytecode import Instruction, OperandKind, Opcode, Program
from portvm.portvm_value import in_int64_range


class ValidationErrorType(Enum):
    """Types of validation errors."""
    EMPTY_PROGRAM = "empty_program"
    INVALID_OPCODE = "invalid_opcode"
    INVALID_OPERAND = "invalid_operand"
    OPERAND_OUT_OF_RANGE = "operand_out_of_range"
    STACK_UNDERFLOW = "stack_underflow"
    BAD_FINAL_DEPTH = "bad_final_depth"
    UNREACHABLE_CODE = "unreachable_code"


@dataclass
class ValidationError(Exception):
    """Bytecode validation error with detailed context."""
    error_type: ValidationErrorType
    message: str
    instruction_index: Optional[int] = None
    opcode: Optional[Opcode] = None

    def __str__(self) -> str:
        parts = [f"Bytecode validation error: {self.message}"]
        if self.instruction_index is not None:
            parts.append(f"  at instruction {self.instruction_index}")

        if self.opcode is not None:
            parts.append(f"  opcode: {self.opcode.name}")

        return "\n".join(parts)


@dataclass
class ValidationReport:
    """Summary of a program that passed validation."""
    halt_index: Optional[int]  # None when the program relies on an implicit HALT
    max_stack_depth: int


class BytecodeValidator:
    """
    Validates PortVM programs for correctness.

    Programs are straight-line, so a single forward pass tracking the stack
    depth is a complete abstract interpretation.
    """

    def validate(self, program: Program) -> ValidationReport:
        """
        Validate a program.

        Args:
            program: Program to validate

        Returns:
            Report describing the validated program

        Raises:
            ValidationError: If the program is invalid
        """
        self._validate_structure(program)
        self._validate_operands(program)
        return self._validate_stack_depth(program)

    def _validate_structure(self, program: Program) -> None:
        """Validate basic structural properties."""
        if not program.instructions:
            raise ValidationError(
                ValidationErrorType.EMPTY_PROGRAM,
                f"Program '{program.name}' has no instructions"
            )

        for i, instr in enumerate(program.instructions):
            if not isinstance(instr, Instruction) or not isinstance(instr.opcode, Opcode):
                raise ValidationError(
                    ValidationErrorType.INVALID_OPCODE,
                    f"Invalid instruction: {instr!r}",
                    instruction_index=i
                )

    def _validate_operands(self, program: Program) -> None:
        """Validate immediate operands against each opcode's operand kind."""
        for i, instr in enumerate(program.instructions):
            kind = instr.opcode.operand_kind
            operand = instr.operand

            if kind == OperandKind.NONE:
                if operand is not None:
                    raise ValidationError(
                        ValidationErrorType.INVALID_OPERAND,
                        f"{instr.opcode.name} takes no operand, got {operand!r}",
                        instruction_index=i,
                        opcode=instr.opcode
                    )

                continue

            if kind == OperandKind.INTEGER:
                # bool is a subclass of int but is never a valid literal
                if not isinstance(operand, int) or isinstance(operand, bool):
                    raise ValidationError(
                        ValidationErrorType.INVALID_OPERAND,
                        f"{instr.opcode.name} requires an integer operand, got {operand!r}",
                        instruction_index=i,
                        opcode=instr.opcode
                    )

                if not in_int64_range(operand):
                    raise ValidationError(
                        ValidationErrorType.OPERAND_OUT_OF_RANGE,
                        f"Integer literal {operand} does not fit in 64 bits",
                        instruction_index=i,
                        opcode=instr.opcode
                    )

                continue

            if not isinstance(operand, str):
                raise ValidationError(
                    ValidationErrorType.INVALID_OPERAND,
                    f"{instr.opcode.name} requires a text operand, got {operand!r}",
                    instruction_index=i,
                    opcode=instr.opcode
                )

    def _validate_stack_depth(self, program: Program) -> ValidationReport:
        """
        Track stack depth through the program.

        Ensures:
        1. No stack underflows
        2. Exactly one value remains at the first HALT (or end of program)
        3. Nothing follows the first HALT
        """
        depth = 0
        max_depth = 0
        instructions = program.instructions

        for i, instr in enumerate(instructions):
            if instr.opcode == Opcode.HALT:
                if depth != 1:
                    raise ValidationError(
                        ValidationErrorType.BAD_FINAL_DEPTH,
                        f"Stack holds {depth} values at HALT, expected exactly 1",
                        instruction_index=i,
                        opcode=instr.opcode
                    )

                if i != len(instructions) - 1:
                    raise ValidationError(
                        ValidationErrorType.UNREACHABLE_CODE,
                        f"{len(instructions) - i - 1} instruction(s) follow HALT",
                        instruction_index=i + 1,
                        opcode=instructions[i + 1].opcode
                    )

                return ValidationReport(halt_index=i, max_stack_depth=max_depth)

            pop_count, push_count = instr.opcode.stack_effect
            if depth < pop_count:
                raise ValidationError(
                    ValidationErrorType.STACK_UNDERFLOW,
                    f"Stack underflow: depth={depth}, need={pop_count}",
                    instruction_index=i,
                    opcode=instr.opcode
                )

            depth = depth - pop_count + push_count
            max_depth = max(max_depth, depth)

        if depth != 1:
            raise ValidationError(
                ValidationErrorType.BAD_FINAL_DEPTH,
                f"Stack holds {depth} values at end of program, expected exactly 1",
                instruction_index=len(instructions)
            )

        return ValidationReport(halt_index=None, max_stack_depth=max_depth)


def validate_bytecode(program: Program) -> ValidationReport:
    """
    Convenience function to validate a program.

    Args:
        program: Program to validate

    Returns:
        Report describing the validated program

    Raises:
        ValidationError: If the program is invalid
    """
    validator = BytecodeValidator()
    return validator.validate(program)
