"""Tests for the PortVM compiler."""

import threading

import pytest

from portvm import (
    CompilerInternalError, DEFAULT_PROGRAMS, Instruction, Opcode, PortVMCompiler, Program, UnknownProgramError
)
from portvm.portvm_bytecode import add, concat, dup, halt, push_int, push_str, to_int


class TestKnownPrograms:
    """Test the default program registry."""

    def test_frontend_compiles_to_digit_doubling(self, compiler):
        """Test that frontend concatenates "69" with itself."""
        program = compiler.compile("frontend")

        assert program == Program("frontend", (push_str("69"), dup(), concat(), to_int(), halt()))

    def test_backend_compiles_to_digit_pair(self, compiler):
        """Test that backend concatenates "420" and "69"."""
        program = compiler.compile("backend")

        assert program == Program("backend", (push_str("420"), push_str("69"), concat(), to_int(), halt()))

    def test_frontend_executes_to_6969(self, compiler, vm):
        """Test the frontend known value."""
        assert vm.execute(compiler.compile("frontend")) == 6969

    def test_backend_executes_to_42069(self, compiler, vm):
        """Test the backend known value."""
        assert vm.execute(compiler.compile("backend")) == 42069

    def test_programs_end_with_halt(self, compiler):
        """Test that every default program ends with an explicit HALT."""
        for name in DEFAULT_PROGRAMS:
            assert compiler.compile(name)[-1].opcode == Opcode.HALT

    def test_program_names_sorted(self, compiler):
        """Test that registered names are listed in sorted order."""
        assert compiler.program_names() == ["backend", "frontend"]


class TestDeterminism:
    """Test that compilation is deterministic."""

    @pytest.mark.parametrize("name", sorted(DEFAULT_PROGRAMS))
    def test_repeated_compile_is_equal(self, compiler, vm, name):
        """Test that compiling twice gives equal programs and equal results."""
        first = compiler.compile(name)
        second = compiler.compile(name)

        assert first == second
        assert vm.execute(first) == vm.execute(second)

    @pytest.mark.parametrize("name", sorted(DEFAULT_PROGRAMS))
    def test_separate_compilers_agree(self, name):
        """Test that independent compilers, with and without caching, produce equal programs."""
        cached = PortVMCompiler().compile(name)
        uncached = PortVMCompiler(cache_enabled=False).compile(name)

        assert cached == uncached
        assert hash(cached) == hash(uncached)


class TestUnknownPrograms:
    """Test compile failures for unregistered names."""

    def test_unknown_name_raises(self, compiler):
        """Test that an unknown name raises UnknownProgramError."""
        with pytest.raises(UnknownProgramError) as exc_info:
            compiler.compile("nonexistent")

        assert "nonexistent" in exc_info.value.message
        assert "backend" in exc_info.value.context

    def test_empty_name_raises(self, compiler):
        """Test that the empty string is not a program name."""
        with pytest.raises(UnknownProgramError):
            compiler.compile("")

    def test_close_match_suggested(self, compiler):
        """Test that a misspelt name produces a suggestion."""
        with pytest.raises(UnknownProgramError) as exc_info:
            compiler.compile("frontnd")

        assert "frontend" in exc_info.value.suggestion

    def test_unknown_name_is_not_cached(self, compiler):
        """Test that failed compilations leave the cache untouched."""
        with pytest.raises(UnknownProgramError):
            compiler.compile("nonexistent")

        assert compiler.cache_stats().size == 0
        assert compiler.compilation_count == 0


class TestRegistration:
    """Test registering new program templates."""

    def test_register_new_program(self, compiler, vm):
        """Test that a new program can be added without touching the VM."""
        compiler.register("admin", [push_int(6000), push_int(900), add(), push_int(60), add(), push_int(9), add(), halt()])

        assert vm.execute(compiler.compile("admin")) == 6969
        assert "admin" in compiler.program_names()

    def test_register_inconsistent_template(self, compiler):
        """Test that an underflowing template is rejected."""
        with pytest.raises(CompilerInternalError) as exc_info:
            compiler.register("broken", [push_str("69"), concat(), halt()])

        assert exc_info.value.instruction_index == 1
        assert exc_info.value.opcode == "CONCAT"
        assert "broken" not in compiler.program_names()

    def test_register_template_leaving_two_values(self, compiler):
        """Test that a template with two values at HALT is rejected."""
        with pytest.raises(CompilerInternalError):
            compiler.register("extra", [push_int(1), push_int(2), halt()])

    def test_register_empty_name(self, compiler):
        """Test that an empty program name is rejected."""
        with pytest.raises(CompilerInternalError):
            compiler.register("", [push_int(1), halt()])

    def test_register_unknown_opcode(self, compiler):
        """Test that a template with a non-Opcode instruction is rejected."""
        with pytest.raises(CompilerInternalError) as exc_info:
            compiler.register("bogus", [Instruction(99), halt()])  # type: ignore[arg-type]

        assert exc_info.value.instruction_index == 0
        assert exc_info.value.opcode is None
        assert "bogus" not in compiler.program_names()

    def test_constructor_rejects_inconsistent_template(self):
        """Test that a bad template in the constructor mapping is reported."""
        with pytest.raises(CompilerInternalError):
            PortVMCompiler(programs={"bad": [halt()]})

    def test_reregister_replaces_cached_program(self, compiler, vm):
        """Test that replacing a template evicts the cached program."""
        assert vm.execute(compiler.compile("frontend")) == 6969

        compiler.register("frontend", [push_int(8080), halt()])

        assert vm.execute(compiler.compile("frontend")) == 8080

    def test_custom_registry_only(self):
        """Test a compiler built from a custom mapping has only those programs."""
        compiler = PortVMCompiler(programs={"one": [push_int(1), halt()]})

        assert compiler.program_names() == ["one"]
        with pytest.raises(UnknownProgramError):
            compiler.compile("frontend")


class TestCache:
    """Test the compilation cache."""

    def test_cache_hit_returns_same_object(self, compiler):
        """Test that a cached compile returns the identical program."""
        first = compiler.compile("frontend")
        second = compiler.compile("frontend")

        assert first is second
        stats = compiler.cache_stats()
        assert stats.size == 1
        assert stats.compilations == 1
        assert stats.hits == 1

    def test_clear_cache(self, compiler):
        """Test that clearing the cache forces recompilation."""
        compiler.compile("frontend")
        compiler.clear_cache()
        compiler.compile("frontend")

        assert compiler.cache_stats().size == 1
        assert compiler.compilation_count == 2

    def test_cache_disabled(self):
        """Test that a compiler without caching compiles every time."""
        compiler = PortVMCompiler(cache_enabled=False)
        compiler.compile("backend")
        compiler.compile("backend")

        stats = compiler.cache_stats()
        assert stats.size == 0
        assert stats.compilations == 2
        assert stats.hits == 0

    def test_concurrent_compiles(self, compiler, vm):
        """Test that many threads can share one compiler."""
        results = []
        lock = threading.Lock()

        def worker(name: str) -> None:
            value = vm.execute(compiler.compile(name))
            with lock:
                results.append((name, value))

        threads = [threading.Thread(target=worker, args=(name,)) for name in ["frontend", "backend"] * 20]
        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 40
        assert all(value == (6969 if name == "frontend" else 42069) for name, value in results)
        assert compiler.compilation_count == 2
