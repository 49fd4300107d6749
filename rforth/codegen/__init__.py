"""rforth code generation - x86-64 NASM output."""

from .codegen import CodeGenerator, generate_nasm

__all__ = ['CodeGenerator', 'generate_nasm']
