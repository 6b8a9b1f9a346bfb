#!/usr/bin/env python3
"""
PortVM Disassembler - compile named programs and show annotated bytecode.

This tool compiles registered PortVM programs and prints:
- Annotated instructions with what they do
- Optionally, the result of running each program and the steps it took
- Optionally, a per-instruction execution trace

Usage:
    portvm-disassemble frontend backend
    portvm-disassemble frontend --run
    portvm-disassemble --list
    portvm-disassemble backend --trace --output backend.txt
"""

import argparse
from pathlib import Path
import sys
from typing import List

from portvm.portvm_bytecode import Instruction, Opcode, Program
from portvm.portvm_compiler import PortVMCompiler
from portvm.portvm_error import PortVMError
from portvm.portvm_trace import PortVMBufferingTraceWatcher
from portvm.portvm_vm import PortVM


def annotate_instruction(instr: Instruction) -> str:
    """Add annotation to instruction showing what it does."""
    opcode = instr.opcode
    annotations = {
        Opcode.HALT: "Stop; top of stack is the result",
        Opcode.POP: "Discard top of stack",
        Opcode.ADD: "Pop b, a; push a + b",
        Opcode.SUB: "Pop b, a; push a - b",
        Opcode.MUL: "Pop b, a; push a * b",
        Opcode.DIV: "Pop b, a; push a // b",
        Opcode.CONCAT: "Pop right, left; push left + right as text",
        Opcode.TO_INT: "Parse text on top of stack as an integer",
        Opcode.DUP: "Duplicate top of stack",
        Opcode.SWAP: "Swap the two topmost values",
    }

    if opcode == Opcode.PUSH_INT:
        return f"  ; Push integer {instr.operand}"

    if opcode == Opcode.PUSH_STR:
        return f"  ; Push text {instr.operand!r}"

    return f"  ; {annotations[opcode]}" if opcode in annotations else ""


def disassemble_program(program: Program) -> List[str]:
    """Disassemble a program into annotated lines."""
    output = []
    output.append(f"\n{'='*70}")
    output.append(f"Program: {program.name}")
    output.append(f"Instructions: {len(program)}")
    output.append(f"{'='*70}")

    for line, instr in zip(program.disassemble(), program):
        output.append(f"  {line:<24}{annotate_instruction(instr)}")

    return output


def run_program(program: Program, trace: bool) -> List[str]:
    """Execute a program, returning result lines (and trace lines if requested)."""
    watcher = PortVMBufferingTraceWatcher() if trace else None
    vm = PortVM(trace_watcher=watcher)
    result = vm.run(program)

    output = []
    if watcher is not None:
        output.append("")
        output.append("Trace:")
        output.extend(f"  {message}" for message in watcher.traces)

    output.append("")
    output.append(f"Result: {result.value}")
    output.append(f"Steps: {result.steps} (max stack depth {result.max_stack_depth})")
    return output


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Disassemble PortVM programs with annotations",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('names', nargs='*', help='Program names to disassemble (default: all)')
    parser.add_argument('--list', '-l', action='store_true',
                       help='List registered program names and exit')
    parser.add_argument('--run', '-r', action='store_true',
                       help='Also execute each program and show its result')
    parser.add_argument('--trace', '-t', action='store_true',
                       help='Also show a per-instruction execution trace (implies --run)')
    parser.add_argument('--output', '-o', help='Output file (default: stdout)')

    args = parser.parse_args(argv)

    compiler = PortVMCompiler()

    if args.list:
        print('\n'.join(compiler.program_names()))
        return 0

    names = args.names or compiler.program_names()
    output_lines: List[str] = []

    try:
        for name in names:
            program = compiler.compile(name)
            output_lines.extend(disassemble_program(program))
            if args.run or args.trace:
                output_lines.extend(run_program(program, args.trace))

    except PortVMError as e:
        print(str(e), file=sys.stderr)
        return 1

    output_text = '\n'.join(output_lines)

    if args.output:
        output_path = Path(args.output)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(output_text)

        print(f"✓ Disassembly written to: {output_path}", file=sys.stderr)

    else:
        print(output_text)

    return 0


if __name__ == '__main__':
    sys.exit(main())
