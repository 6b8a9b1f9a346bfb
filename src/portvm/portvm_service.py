"""Port service - resolves named ports by compiling and running their programs."""

import logging
from typing import Dict, Protocol

from portvm.portvm_bytecode import Program
from portvm.portvm_compiler import PortVMCompiler
from portvm.portvm_error import PortVMError
from portvm.portvm_vm import PortVM


# Ports the default programs are known to produce
EXPECTED_PORTS: Dict[str, int] = {
    'frontend': 6969,
    'backend': 42069,
}


class PortProgramRunner(Protocol):
    """Anything that can compile a program name and execute the result."""

    def compile(self, name: str) -> Program:
        """Compile a program name to bytecode."""

    def execute(self, program: Program) -> int:
        """Execute a program and return its integer result."""


class PortVMRunner:
    """Default runner: a PortVMCompiler paired with a PortVM."""

    def __init__(self, compiler: PortVMCompiler | None = None, vm: PortVM | None = None) -> None:
        self.compiler = compiler if compiler is not None else PortVMCompiler()
        self.vm = vm if vm is not None else PortVM()

    def compile(self, name: str) -> Program:
        return self.compiler.compile(name)

    def execute(self, program: Program) -> int:
        return self.vm.execute(program)


class PortService:
    """
    Resolves port numbers for named services.

    The service only depends on the PortProgramRunner protocol, so the
    compiler and VM can be swapped without touching callers.
    """

    def __init__(self, runner: PortProgramRunner | None = None) -> None:
        """
        Initialize the service.

        Args:
            runner: Compiler/VM pair to use; defaults to a PortVMRunner
        """
        self._runner: PortProgramRunner = runner if runner is not None else PortVMRunner()
        self._logger = logging.getLogger("PortService")

    def get_port(self, name: str) -> int:
        """
        Compile and run the program for a name.

        Args:
            name: Program name, e.g. "frontend"

        Returns:
            The port number

        Raises:
            PortVMError: If compilation or execution fails
        """
        try:
            program = self._runner.compile(name)
            return self._runner.execute(program)

        except PortVMError as e:
            self._logger.error("Failed to resolve port '%s': %s", name, e.message)
            raise

    def frontend_port(self) -> int:
        """Return the frontend port."""
        return self.get_port('frontend')

    def backend_port(self) -> int:
        """Return the backend port."""
        return self.get_port('backend')

    def get_all_ports(self) -> Dict[str, int]:
        """Return the port for every name in EXPECTED_PORTS."""
        return {name: self.get_port(name) for name in EXPECTED_PORTS}

    def validate_ports(self) -> bool:
        """Check that every expected port resolves to its known value."""
        ports = self.get_all_ports()
        mismatched = [name for name, port in ports.items() if port != EXPECTED_PORTS[name]]
        for name in mismatched:
            self._logger.warning(
                "Port '%s' resolved to %d, expected %d", name, ports[name], EXPECTED_PORTS[name]
            )

        return not mismatched
