"""Exception classes for the PortVM compiler and virtual machine with detailed context."""

from typing import Any, List, Optional
import difflib


class PortVMError(Exception):
    """Base exception for PortVM errors with detailed context information."""

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        suggestion: Optional[str] = None,
        instruction_index: Optional[int] = None,
        opcode: Optional[str] = None
    ):
        """
        Initialize detailed error.

        Args:
            message: Core error description
            context: Additional context information
            expected: What was expected
            received: What was actually received
            suggestion: Suggestion for fixing the error
            instruction_index: Index of the instruction that faulted
            opcode: Name of the opcode that faulted
        """
        self.message = message
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion
        self.instruction_index = instruction_index
        self.opcode = opcode

        super().__init__(self._format_detailed_message())

    def _format_detailed_message(self) -> str:
        """Format the error message with all available details."""
        parts = [f"Error: {self.message}"]

        if self.instruction_index is not None:
            location = f"Instruction: {self.instruction_index}"
            if self.opcode is not None:
                location += f" ({self.opcode})"

            parts.append(location)

        if self.received:
            parts.append(f"Received: {self.received}")

        if self.expected:
            parts.append(f"Expected: {self.expected}")

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        return "\n".join(parts)


class CompileError(PortVMError):
    """Errors raised while turning a program name into bytecode."""


class UnknownProgramError(CompileError):
    """The requested program name is not registered with the compiler."""


class CompilerInternalError(CompileError):
    """A registered program template is internally inconsistent."""


class VmExecutionError(PortVMError):
    """
    Errors raised while executing a program.

    The VM attaches the faulted ExecutionState as execution_state before
    re-raising, so callers can inspect the steps taken and the stack.
    """
    execution_state: Any = None


class StackUnderflowError(VmExecutionError):
    """An instruction needed more operands than the stack held."""


class TypeMismatchError(VmExecutionError):
    """An instruction received an operand of the wrong type."""


class ParseError(VmExecutionError):
    """TO_INT received text that is not a non-negative base-10 integer."""


class IncompleteProgramError(VmExecutionError):
    """The stack did not hold exactly one operand when execution halted."""


class ArithmeticOverflowError(VmExecutionError):
    """An integer result fell outside the signed 64-bit range."""


class DivisionByZeroError(VmExecutionError):
    """DIV was asked to divide by zero."""


class InvalidInstructionError(VmExecutionError):
    """The program contains an unknown opcode or a malformed operand."""


def suggest_similar_names(target: str, available: List[str], max_suggestions: int = 3) -> List[str]:
    """Suggest similar names using fuzzy matching."""
    if not target or not available:
        return []

    return difflib.get_close_matches(target, available, n=max_suggestions, cutoff=0.6)
