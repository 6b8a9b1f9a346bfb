"""PortVM - a tiny compiler and stack virtual machine that compute named port numbers."""

# Main API
from portvm.portvm_compiler import PortVMCompiler, CacheStats, DEFAULT_PROGRAMS
from portvm.portvm_vm import PortVM, ExecutionResult, ExecutionState, VMState
from portvm.portvm_service import PortService, PortProgramRunner, PortVMRunner, EXPECTED_PORTS

# Exceptions (for error handling)
from portvm.portvm_error import (
    PortVMError, CompileError, UnknownProgramError, CompilerInternalError,
    VmExecutionError, StackUnderflowError, TypeMismatchError, ParseError, IncompleteProgramError,
    ArithmeticOverflowError, DivisionByZeroError, InvalidInstructionError
)

# Bytecode and operands
from portvm.portvm_bytecode import Instruction, Opcode, OperandKind, Program
from portvm.portvm_value import PortVMValue, PortVMInteger, PortVMText

# Lower-level components (for advanced usage)
from portvm.portvm_validator import BytecodeValidator, ValidationError, ValidationErrorType, validate_bytecode
from portvm.portvm_trace import PortVMTraceWatcher, PortVMStdoutTraceWatcher, PortVMBufferingTraceWatcher


__all__ = [
    # Main API
    "PortVMCompiler", "CacheStats", "DEFAULT_PROGRAMS",
    "PortVM", "ExecutionResult", "ExecutionState", "VMState",
    "PortService", "PortProgramRunner", "PortVMRunner", "EXPECTED_PORTS",

    # Exceptions
    "PortVMError", "CompileError", "UnknownProgramError", "CompilerInternalError",
    "VmExecutionError", "StackUnderflowError", "TypeMismatchError", "ParseError", "IncompleteProgramError",
    "ArithmeticOverflowError", "DivisionByZeroError", "InvalidInstructionError",

    # Bytecode and operands
    "Instruction", "Opcode", "OperandKind", "Program",
    "PortVMValue", "PortVMInteger", "PortVMText",

    # Lower-level components
    "BytecodeValidator", "ValidationError", "ValidationErrorType", "validate_bytecode",
    "PortVMTraceWatcher", "PortVMStdoutTraceWatcher", "PortVMBufferingTraceWatcher",
]
