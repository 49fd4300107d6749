"""
Program representation shared by every stage of the toolchain.

A program is an ordered sequence of tokens. The position of a token in the
sequence is its jump address: control words (if, else, end, do) carry an
absolute target index once blocks have been resolved, and the address equal
to the program length is the exit point.
"""

from enum import Enum
from dataclasses import dataclass, replace
from typing import Optional, Tuple


class OpType(Enum):
    """Opcodes of the language. The value is the name used in listings."""
    PUSH_INT = "push"
    ADD = "plus"
    SUB = "minus"
    EQUAL = "equal"
    GREATER = "gt"
    PRINT = "dump"
    DUPLICATE = "dup"
    IF = "if"
    ELSE = "else"
    END = "end"
    WHILE = "while"
    DO = "do"


# Words carrying a jump target after resolution
CONTROL_OPS = frozenset({OpType.IF, OpType.ELSE, OpType.END, OpType.DO})

# Source spelling of every keyword
KEYWORDS = {
    '+': OpType.ADD,
    '-': OpType.SUB,
    '.': OpType.PRINT,
    '=': OpType.EQUAL,
    '>': OpType.GREATER,
    'dup': OpType.DUPLICATE,
    'if': OpType.IF,
    'else': OpType.ELSE,
    'end': OpType.END,
    'while': OpType.WHILE,
    'do': OpType.DO,
}


@dataclass(frozen=True)
class SourceLocation:
    """Where a token came from. Rows and columns are 1-based."""
    file: str
    row: int
    column: int

    def __str__(self):
        return f"{self.file}:{self.row}:{self.column}"


@dataclass(frozen=True)
class Instruction:
    """
    A single operation.

    `value` is only meaningful for PUSH_INT; `target` is only meaningful for
    control words and stays None until the block resolver fills it in.
    """
    op: OpType
    value: Optional[int] = None
    target: Optional[int] = None

    @property
    def is_control(self) -> bool:
        return self.op in CONTROL_OPS

    def with_target(self, target: int) -> 'Instruction':
        return replace(self, target=target)

    def __str__(self):
        if self.op == OpType.PUSH_INT:
            return f"push {self.value}"
        if self.is_control:
            target = '?' if self.target is None else self.target
            return f"{self.op.value} -> {target}"
        return self.op.value


@dataclass(frozen=True)
class Token:
    """An instruction together with its source location."""
    loc: SourceLocation
    instr: Instruction

    @property
    def op(self) -> OpType:
        return self.instr.op

    def with_target(self, target: int) -> 'Token':
        return replace(self, instr=self.instr.with_target(target))

    def __repr__(self):
        return f"Token({self.instr}, {self.loc})"


# A resolved program: immutable once the block resolver hands it out
Program = Tuple[Token, ...]


def format_program(program: Program) -> str:
    """Render a program as one numbered instruction per line."""
    return "\n".join(f"{i:04d}  {token.instr}" for i, token in enumerate(program))
