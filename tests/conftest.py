"""
Test fixtures and helpers for the rforth test suite.

The key abstractions are:

- run_source(): lex, resolve and simulate a source string
- NativeToolchain: compiles a source string with nasm/ld and runs the binary
- AssertProgram(): fluent API for testing resolution and execution results
"""

import io
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Type

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from rforth.codegen import generate_nasm
from rforth.errors import RForthError
from rforth.interpreter import Interpreter
from rforth.lexer import Lexer
from rforth.parser import resolve_blocks
from rforth.program import Program


# Guards tests against programs that never terminate
DEFAULT_MAX_STEPS = 100000


def load_source(source: str, filename: str = "test.rf") -> Program:
    """Lex and resolve a source string."""
    return resolve_blocks(Lexer(source, filename).tokenize())


def run_source(source: str, max_steps: int = DEFAULT_MAX_STEPS) -> str:
    """Simulate a source string and return everything it printed."""
    out = io.StringIO()
    Interpreter(load_source(source), out=out, max_steps=max_steps).run()
    return out.getvalue()


@dataclass
class ExecutionResult:
    """Result of running a native executable."""
    output: str
    returncode: int


class NativeToolchain:
    """Assembles and links generated code with nasm and ld."""

    def __init__(self, workdir: Path):
        self.workdir = workdir

    @staticmethod
    def available() -> bool:
        return (sys.platform.startswith('linux')
                and shutil.which('nasm') is not None
                and shutil.which('ld') is not None)

    def run(self, source: str, name: str = "prog") -> ExecutionResult:
        asm_path = self.workdir / f"{name}.asm"
        obj_path = self.workdir / f"{name}.o"
        exe_path = self.workdir / name
        asm_path.write_text(generate_nasm(load_source(source, f"{name}.rf")))

        subprocess.run(['nasm', '-felf64', str(asm_path), '-o', str(obj_path)], check=True)
        subprocess.run(['ld', '-o', str(exe_path), str(obj_path)], check=True)
        proc = subprocess.run([str(exe_path)], capture_output=True, text=True, timeout=10)
        return ExecutionResult(proc.stdout, proc.returncode)


class ProgramAssertion:
    """
    Fluent assertion helper for testing rforth programs.

    Usage:
        AssertProgram("1 2 + .").outputs("3")
        AssertProgram("end").fails_with(StructuralError, "no open block")
    """

    def __init__(self, source: str):
        self.source = source
        self.max_steps = DEFAULT_MAX_STEPS

    def with_max_steps(self, max_steps: int) -> 'ProgramAssertion':
        self.max_steps = max_steps
        return self

    def outputs(self, *lines: str) -> 'ProgramAssertion':
        """Assert that simulation prints exactly the given lines."""
        expected = "".join(f"{line}\n" for line in lines)
        actual = run_source(self.source, self.max_steps)
        assert actual == expected, \
            f"Expected output {expected!r}, got {actual!r}\nSource: {self.source}"
        return self

    def outputs_nothing(self) -> 'ProgramAssertion':
        return self.outputs()

    def outputs_same_as(self, other_source: str) -> 'ProgramAssertion':
        """Assert that two programs print the same thing."""
        assert run_source(self.source, self.max_steps) == run_source(other_source, self.max_steps)
        return self

    def leaves_stack(self, *values: int) -> 'ProgramAssertion':
        """Assert the values left on the stack after simulation."""
        interp = Interpreter(load_source(self.source), out=io.StringIO(), max_steps=self.max_steps)
        stack = interp.run()
        assert stack == list(values), f"Expected stack {list(values)}, got {stack}"
        return self

    def resolves_to(self, *targets: Optional[int]) -> 'ProgramAssertion':
        """Assert the jump target of every token, in order."""
        program = load_source(self.source)
        actual = [token.instr.target for token in program]
        assert actual == list(targets), f"Expected targets {list(targets)}, got {actual}"
        return self

    def fails_with(self, error_type: Type[RForthError], fragment: Optional[str] = None,
                   row: Optional[int] = None, column: Optional[int] = None) -> 'ProgramAssertion':
        """Assert that lexing, resolving or simulating raises the given error."""
        with pytest.raises(error_type) as excinfo:
            run_source(self.source, self.max_steps)
        error = excinfo.value
        if fragment is not None:
            assert fragment in str(error), f"Expected '{fragment}' in '{error}'"
        if row is not None:
            assert error.location.row == row, f"Expected row {row}, got {error.location}"
        if column is not None:
            assert error.location.column == column, f"Expected column {column}, got {error.location}"
        return self


def AssertProgram(source: str) -> ProgramAssertion:
    return ProgramAssertion(source)


@pytest.fixture
def native(tmp_path):
    """A NativeToolchain working in a temporary directory; skips without nasm/ld."""
    if not NativeToolchain.available():
        pytest.skip("nasm and ld are required for native tests")
    return NativeToolchain(tmp_path)
