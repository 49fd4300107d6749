"""
Main rforth driver.

Coordinates lexing, block resolution, simulation, code generation and the
external assembler/linker.
"""

import shlex
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .codegen import CodeGenerator
from .errors import RForthError, ToolchainError
from .interpreter import Interpreter
from .lexer import lex_file
from .parser import resolve_blocks
from .program import Program, format_program


SOURCE_EXTENSION = '.rf'

# Every spelling of a subcommand accepted on the command line
SUBCOMMAND_ALIASES = {
    'sim': 'sim', 'simulate': 'sim', '-s': 'sim', '--simulate': 'sim',
    'com': 'com', 'compile': 'com', '-c': 'com', '--compile': 'com',
    'help': 'help', '-h': 'help', '--help': 'help',
}


class RForthCompiler:
    """Main rforth toolchain class."""

    def __init__(self, verbose: bool = False, output_dir: Optional[str] = None,
                 assembler: str = 'nasm', linker: str = 'ld',
                 max_steps: Optional[int] = None, out: Optional[TextIO] = None):
        self.verbose = verbose
        self.output_dir = output_dir  # None means the current directory
        self.assembler = assembler
        self.linker = linker
        self.max_steps = max_steps
        self.out = out

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[rforth] {message}", file=sys.stderr)

    def report(self, error: Exception):
        print(f"Error: {error}", file=sys.stderr)

    def check_extension(self, input_path: str):
        if Path(input_path).suffix != SOURCE_EXTENSION:
            raise ToolchainError(
                f"{input_path}: not a rusty forth file, expected a '{SOURCE_EXTENSION}' file")

    def load_program(self, input_path: str) -> Program:
        """Read, lex and resolve a source file."""
        self.check_extension(input_path)
        self.log(f"Reading {input_path}...")
        tokens = lex_file(input_path)
        self.log(f"Lexed {len(tokens)} tokens")
        program = resolve_blocks(tokens)
        if program:
            self.log(f"Resolved program:\n{format_program(program)}")
        return program

    def simulate_file(self, input_path: str) -> bool:
        """
        Simulate a source file.

        Returns:
            True if the program ran to completion, False otherwise
        """
        try:
            program = self.load_program(input_path)
            Interpreter(program, out=self.out, max_steps=self.max_steps).run()
            return True
        except (RForthError, OSError) as e:
            self.report(e)
            return False

    def output_paths(self, input_path: str):
        """Return the (assembly, object, executable) paths for a source file."""
        stem = Path(input_path).stem
        base = Path(self.output_dir) if self.output_dir else Path('.')
        return base / f"{stem}.asm", base / f"{stem}.o", base / stem

    def generate_assembly(self, input_path: str) -> Path:
        """Resolve a source file and write its assembly next to the outputs."""
        program = self.load_program(input_path)
        asm_path, _, _ = self.output_paths(input_path)
        print(f"Info: Generating {asm_path}")
        CodeGenerator(program).write(str(asm_path))
        return asm_path

    def run_command(self, cmd: List[str]) -> int:
        """Echo and run an external command, returning its exit status."""
        print(f"[CMD] {' '.join(map(shlex.quote, cmd))}")
        sys.stdout.flush()
        return subprocess.call(cmd)

    def run_tool(self, cmd: List[str]):
        try:
            status = self.run_command(cmd)
        except FileNotFoundError as e:
            raise ToolchainError(f"{cmd[0]} not found") from e
        if status != 0:
            raise ToolchainError(f"{cmd[0]} failed with exit status {status}")

    def compile_file(self, input_path: str, run: bool = False) -> bool:
        """
        Compile a source file to a native executable.

        Args:
            input_path: Path to .rf source file
            run: Run the executable after linking

        Returns:
            True if compilation (and the optional run) succeeded, False otherwise
        """
        try:
            asm_path = self.generate_assembly(input_path)
            _, obj_path, exe_path = self.output_paths(input_path)
            self.run_tool([self.assembler, '-felf64', str(asm_path), '-o', str(obj_path)])
            self.run_tool([self.linker, '-o', str(exe_path), str(obj_path)])
            self.log(f"Compilation successful: {exe_path}")
            if run:
                return self.run_command([str(exe_path.resolve())]) == 0
            return True
        except (RForthError, OSError) as e:
            self.report(e)
            return False


def usage(compiler_name: str):
    print(f"Usage: {compiler_name} <SUBCOMMAND> [ARGS]")
    print("SUBCOMMANDS:")
    print("    sim <file>       Simulate the program")
    print("    com <file>       Compile the program")
    print("    help             Print this help to stdout and exit with 0 code")


def main(argv: Optional[List[str]] = None):
    """Command-line interface for the toolchain."""
    import argparse

    if argv is None:
        argv = sys.argv[1:]
    compiler_name = 'rforth'

    if not argv:
        usage(compiler_name)
        print("Error: no subcommand is provided", file=sys.stderr)
        sys.exit(1)

    subcommand = SUBCOMMAND_ALIASES.get(argv[0])
    if subcommand is None:
        usage(compiler_name)
        print(f"Error: unknown subcommand {argv[0]}", file=sys.stderr)
        sys.exit(1)
    if subcommand == 'help':
        usage(compiler_name)
        sys.exit(0)

    parser = argparse.ArgumentParser(
        prog=f"{compiler_name} {subcommand}",
        description='rforth - simulate or compile a rusty forth program'
    )
    parser.add_argument('input', help=f'Input {SOURCE_EXTENSION} source file')
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose output')
    if subcommand == 'sim':
        parser.add_argument('--max-steps', type=int, default=None,
                            help='Abort the simulation after this many instructions')
    else:
        parser.add_argument('-o', '--output-dir',
                            help='Directory for the .asm, .o and executable (default: current directory)')
        parser.add_argument('-r', '--run', action='store_true',
                            help='Run the executable after compiling it')

    args = parser.parse_args(argv[1:])

    if subcommand == 'sim':
        compiler = RForthCompiler(verbose=args.verbose, max_steps=args.max_steps)
        success = compiler.simulate_file(args.input)
    else:
        compiler = RForthCompiler(verbose=args.verbose, output_dir=args.output_dir)
        success = compiler.compile_file(args.input, run=args.run)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
