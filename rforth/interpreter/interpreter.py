"""
Interpreter - simulates a resolved program.

Keeps an integer value stack and a program counter and follows the jump
targets filled in by the block resolver. Values are 64-bit two's complement
and wrap on overflow, matching the registers used by the generated code.
"""

import sys
from typing import List, Optional, Sequence, TextIO

from ..errors import RuntimeFault, UnresolvedTargetError
from ..program import OpType, Token


WORD_BITS = 64
WORD_MASK = (1 << WORD_BITS) - 1
SIGN_BIT = 1 << (WORD_BITS - 1)


def wrap(value: int) -> int:
    """Reduce an integer to a signed 64-bit value."""
    value &= WORD_MASK
    return value - (1 << WORD_BITS) if value & SIGN_BIT else value


class Interpreter:
    """Executes a resolved program."""

    def __init__(self, program: Sequence[Token], out: Optional[TextIO] = None,
                 max_steps: Optional[int] = None):
        self.program = program
        self.out = out
        self.max_steps = max_steps  # None means unbounded

        self.stack: List[int] = []
        self.pc = 0
        self.steps = 0

    def pop(self, token: Token) -> int:
        if not self.stack:
            raise RuntimeFault(f"stack underflow in '{token.op.value}'", token.loc)
        return self.stack.pop()

    def target(self, token: Token) -> int:
        target = token.instr.target
        if target is None:
            raise UnresolvedTargetError(
                f"'{token.op.value}' does not have a reference to the end of its block", token.loc)
        return target

    def step(self):
        """Execute the instruction at the program counter."""
        token = self.program[self.pc]
        op = token.op
        next_pc = self.pc + 1

        if op == OpType.PUSH_INT:
            self.stack.append(token.instr.value)
        elif op == OpType.ADD:
            a = self.pop(token)
            b = self.pop(token)
            self.stack.append(wrap(a + b))
        elif op == OpType.SUB:
            a = self.pop(token)
            b = self.pop(token)
            self.stack.append(wrap(b - a))
        elif op == OpType.EQUAL:
            a = self.pop(token)
            b = self.pop(token)
            self.stack.append(int(a == b))
        elif op == OpType.GREATER:
            a = self.pop(token)
            b = self.pop(token)
            self.stack.append(int(b > a))
        elif op == OpType.DUPLICATE:
            a = self.pop(token)
            self.stack.append(a)
            self.stack.append(a)
        elif op == OpType.PRINT:
            a = self.pop(token)
            out = self.out if self.out is not None else sys.stdout
            out.write(f"{a}\n")
        elif op == OpType.IF or op == OpType.DO:
            if self.pop(token) == 0:
                next_pc = self.target(token)
        elif op == OpType.ELSE or op == OpType.END:
            next_pc = self.target(token)
        elif op == OpType.WHILE:
            pass
        else:
            raise ValueError(f"Unknown opcode: {op}")

        self.pc = next_pc

    def run(self) -> List[int]:
        """
        Run the program until it falls off the end.

        Returns:
            Whatever is left on the value stack

        Raises:
            RuntimeFault: on stack underflow or when max_steps is exceeded
        """
        while self.pc < len(self.program):
            if self.max_steps is not None and self.steps >= self.max_steps:
                token = self.program[self.pc]
                raise RuntimeFault(f"step limit of {self.max_steps} exceeded", token.loc)
            self.step()
            self.steps += 1
        return self.stack


def simulate_program(program: Sequence[Token], out: Optional[TextIO] = None,
                     max_steps: Optional[int] = None) -> List[int]:
    """Simulate a resolved program, writing printed values to `out`."""
    return Interpreter(program, out=out, max_steps=max_steps).run()
