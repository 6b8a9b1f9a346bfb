"""Tests for the disassembler command line tool."""

from portvm.portvm_bytecode import Instruction, Opcode, Program, concat, push_int, push_str
from portvm.portvm_disassemble import annotate_instruction, disassemble_program, main


class TestAnnotations:
    """Test instruction annotations."""

    def test_push_annotations(self):
        """Test that pushes show their literal."""
        assert annotate_instruction(push_int(69)) == "  ; Push integer 69"
        assert annotate_instruction(push_str("69")) == "  ; Push text '69'"

    def test_every_opcode_is_annotated(self):
        """Test that no opcode is left without an annotation."""
        for opcode in Opcode:
            operand = 1 if opcode == Opcode.PUSH_INT else "1" if opcode == Opcode.PUSH_STR else None
            assert annotate_instruction(Instruction(opcode, operand)).startswith("  ; ")

    def test_disassemble_program(self):
        """Test the program header and instruction lines."""
        lines = disassemble_program(Program("p", (push_str("6"), push_str("9"), concat())))

        assert "Program: p" in lines
        assert "Instructions: 3" in lines
        assert any(line.startswith("  2: CONCAT") for line in lines)


class TestMain:
    """Test the command line entry point."""

    def test_list(self, capsys):
        """Test listing registered programs."""
        assert main(["--list"]) == 0

        assert capsys.readouterr().out.split() == ["backend", "frontend"]

    def test_disassemble_all(self, capsys):
        """Test that all programs are disassembled by default."""
        assert main([]) == 0

        out = capsys.readouterr().out
        assert "Program: frontend" in out
        assert "Program: backend" in out
        assert "Result:" not in out

    def test_run(self, capsys):
        """Test running a program from the command line."""
        assert main(["frontend", "--run"]) == 0

        out = capsys.readouterr().out
        assert "Result: 6969" in out
        assert "Steps: 5" in out

    def test_trace(self, capsys):
        """Test that --trace shows a per-instruction trace and the result."""
        assert main(["backend", "--trace"]) == 0

        out = capsys.readouterr().out
        assert "Trace:" in out
        assert "4: HALT -> [42069]" in out
        assert "Result: 42069" in out

    def test_unknown_program(self, capsys):
        """Test that an unknown program exits with status 1."""
        assert main(["nonexistent"]) == 1

        assert "Unknown program: 'nonexistent'" in capsys.readouterr().err

    def test_output_file(self, tmp_path, capsys):
        """Test writing disassembly to a file."""
        output = tmp_path / "out.txt"

        assert main(["backend", "--output", str(output)]) == 0

        assert "Program: backend" in output.read_text(encoding="utf-8")
        assert "written to" in capsys.readouterr().err
