"""Shared fixtures and utilities for PortVM tests."""

from typing import Iterable

import pytest

from portvm import PortService, PortVM, PortVMCompiler, Program
from portvm.portvm_bytecode import Instruction


@pytest.fixture
def compiler():
    """Create a fresh compiler with the default programs for each test."""
    return PortVMCompiler()


@pytest.fixture
def vm():
    """Create a fresh VM for each test."""
    return PortVM()


@pytest.fixture
def service():
    """Create a port service backed by the default compiler and VM."""
    return PortService()


class PortVMTestHelpers:
    """Helper utilities for PortVM testing."""

    @staticmethod
    def program(*instructions: Instruction, name: str = "test") -> Program:
        """Build a hand-written program."""
        return Program(name, instructions)

    @staticmethod
    def run_instructions(vm: PortVM, instructions: Iterable[Instruction]) -> int:
        """Execute a list of instructions and return the result."""
        return vm.execute(Program("test", tuple(instructions)))


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return PortVMTestHelpers
