"""PortVM compiler - turns symbolic program names into bytecode."""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

from portvm.portvm_bytecode import Instruction, Program, concat, dup, halt, push_str, to_int
from portvm.portvm_error import CompilerInternalError, UnknownProgramError, suggest_similar_names
from portvm.portvm_validator import ValidationError, validate_bytecode


# Digit groups the canonical ports are assembled from
BASE_DIGITS = "69"
SECOND_BASE_DIGITS = "420"


# Maps program name -> instruction template.  Each template builds its port
# by concatenating decimal digit groups and parsing the result.
DEFAULT_PROGRAMS: Dict[str, Tuple[Instruction, ...]] = {
    # "69" + "69" -> 6969
    'frontend': (
        push_str(BASE_DIGITS),
        dup(),
        concat(),
        to_int(),
        halt(),
    ),
    # "420" + "69" -> 42069
    'backend': (
        push_str(SECOND_BASE_DIGITS),
        push_str(BASE_DIGITS),
        concat(),
        to_int(),
        halt(),
    ),
}


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the compilation cache."""
    size: int
    compilations: int
    hits: int


class PortVMCompiler:
    """
    Compiles program names to bytecode.

    The compiler holds a registry of hand-authored instruction templates, one
    per program name.  Adding a new named program only needs a new template;
    the VM and instruction set are unchanged.  Compiled programs are
    immutable, so they are cached and shared between callers.
    """

    def __init__(
        self,
        programs: Mapping[str, Iterable[Instruction]] | None = None,
        cache_enabled: bool = True
    ) -> None:
        """
        Initialize the compiler.

        Args:
            programs: Name to instruction template mapping; defaults to DEFAULT_PROGRAMS
            cache_enabled: Whether compiled programs are memoised by name

        Raises:
            CompilerInternalError: If any template fails validation
        """
        self._logger = logging.getLogger("PortVMCompiler")
        self._cache_enabled = cache_enabled
        self._lock = threading.Lock()
        self._templates: Dict[str, Tuple[Instruction, ...]] = {}
        self._cache: Dict[str, Program] = {}
        self._compilation_count = 0
        self._cache_hits = 0

        source = DEFAULT_PROGRAMS if programs is None else programs
        for name, template in source.items():
            self.register(name, template)

    @property
    def compilation_count(self) -> int:
        """Number of programs built from templates (cache hits excluded)."""
        return self._compilation_count

    def register(self, name: str, template: Iterable[Instruction]) -> None:
        """
        Register (or replace) a named program template.

        Args:
            name: Program name
            template: Instructions making up the program

        Raises:
            CompilerInternalError: If the template fails validation; it is not registered
        """
        if not isinstance(name, str) or not name:
            raise CompilerInternalError(
                message="Program names must be non-empty strings",
                received=repr(name)
            )

        instructions = tuple(template)
        self._check_template(Program(name, instructions))

        with self._lock:
            self._templates[name] = instructions
            self._cache.pop(name, None)

        self._logger.debug("Registered program '%s' (%d instructions)", name, len(instructions))

    def program_names(self) -> List[str]:
        """Return the registered program names, sorted."""
        with self._lock:
            return sorted(self._templates)

    def compile(self, name: str) -> Program:
        """
        Compile a program name to bytecode.

        Args:
            name: Registered program name

        Returns:
            Immutable program; repeated calls return equal programs

        Raises:
            UnknownProgramError: If the name is not registered
            CompilerInternalError: If the registered template is inconsistent
        """
        with self._lock:
            if self._cache_enabled and name in self._cache:
                self._cache_hits += 1
                return self._cache[name]

            template = self._templates.get(name)
            if template is None:
                available = sorted(self._templates)
                raise self._unknown_program(name, available)

            program = Program(name, template)
            self._check_template(program)

            self._compilation_count += 1
            if self._cache_enabled:
                self._cache[name] = program

        self._logger.debug("Compiled program '%s' (%d instructions)", name, len(program))
        return program

    def clear_cache(self) -> None:
        """Discard all cached programs."""
        with self._lock:
            self._cache.clear()

    def cache_stats(self) -> CacheStats:
        """Return a snapshot of cache size, compilation count and cache hits."""
        with self._lock:
            return CacheStats(
                size=len(self._cache),
                compilations=self._compilation_count,
                hits=self._cache_hits
            )

    def _check_template(self, program: Program) -> None:
        """Validate a program, translating validator failures to compiler errors."""
        try:
            validate_bytecode(program)

        except ValidationError as e:
            raise CompilerInternalError(
                message=f"Program template '{program.name}' is inconsistent: {e.message}",
                context=f"Validation failure: {e.error_type.value}",
                instruction_index=e.instruction_index,
                opcode=e.opcode.name if e.opcode is not None else None
            ) from e

    def _unknown_program(self, name: str, available: List[str]) -> UnknownProgramError:
        """Build a helpful error for an unregistered name."""
        similar = suggest_similar_names(name, available)
        suggestion = (
            f"Did you mean: {', '.join(similar)}?" if similar
            else "Register a template for this name before compiling it"
        )

        return UnknownProgramError(
            message=f"Unknown program: '{name}'",
            context=f"Available programs: {', '.join(available) if available else '(none)'}",
            suggestion=suggestion
        )
