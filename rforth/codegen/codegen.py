"""
Code generator - converts a resolved program to x86-64 NASM assembly.

The native stack doubles as the value stack. Every token gets an
`addr_<index>` label so the jump targets computed by the block resolver map
directly onto labels; one extra label at the program length holds the exit
sequence.
"""

from typing import List, Sequence

from ..errors import UnresolvedTargetError
from ..program import OpType, Token


# Prints the signed 64-bit value in rdi followed by a newline using the
# write syscall. Digits are produced by multiplying with the reciprocal of 10.
DUMP_ROUTINE = [
    "dump:",
    "    mov     r10, rdi",
    "    test    rdi, rdi",
    "    jns     .L1",
    "    neg     rdi",
    ".L1:",
    "    mov     r9, -3689348814741910323",
    "    sub     rsp, 40",
    "    mov     BYTE [rsp+31], 10",
    "    lea     rcx, [rsp+30]",
    ".L2:",
    "    mov     rax, rdi",
    "    lea     r8, [rsp+32]",
    "    mul     r9",
    "    mov     rax, rdi",
    "    sub     r8, rcx",
    "    shr     rdx, 3",
    "    lea     rsi, [rdx+rdx*4]",
    "    add     rsi, rsi",
    "    sub     rax, rsi",
    "    add     eax, 48",
    "    mov     BYTE [rcx], al",
    "    mov     rax, rdi",
    "    mov     rdi, rdx",
    "    mov     rdx, rcx",
    "    sub     rcx, 1",
    "    cmp     rax, 9",
    "    ja      .L2",
    "    test    r10, r10",
    "    jns     .L3",
    "    sub     rdx, 1",
    "    mov     BYTE [rdx], 45",
    "    add     r8, 1",
    ".L3:",
    "    lea     rax, [rsp+32]",
    "    mov     edi, 1",
    "    sub     rdx, rax",
    "    xor     eax, eax",
    "    lea     rsi, [rsp+32+rdx]",
    "    mov     rdx, r8",
    "    mov     rax, 1",
    "    syscall",
    "    add     rsp, 40",
    "    ret",
]


class CodeGenerator:
    """Generates NASM assembly text from a resolved program."""

    def __init__(self, program: Sequence[Token]):
        self.program = program
        self.lines: List[str] = []

    def emit(self, *lines: str):
        self.lines.extend(lines)

    def label(self, index: int) -> str:
        return f"addr_{index}"

    def target(self, token: Token) -> int:
        target = token.instr.target
        if target is None:
            raise UnresolvedTargetError(
                f"'{token.op.value}' does not have a reference to the end of its block", token.loc)
        return target

    def generate(self) -> str:
        """Generate the complete assembly unit."""
        self.lines = []
        self.emit("BITS 64", "segment .text")
        self.emit(*DUMP_ROUTINE)
        self.emit("global _start", "_start:")

        for index, token in enumerate(self.program):
            self.emit(f"{self.label(index)}:")
            self.generate_token(index, token)

        self.emit(f"{self.label(len(self.program))}:")
        self.emit("    mov rax, 60", "    mov rdi, 0", "    syscall")
        return "\n".join(self.lines) + "\n"

    def generate_token(self, index: int, token: Token):
        """Generate the instructions for one token."""
        op = token.op

        if op == OpType.PUSH_INT:
            self.emit(f"    ;; -- push {token.instr.value} --",
                      f"    push {token.instr.value}")
        elif op == OpType.ADD:
            self.emit("    ;; -- plus --",
                      "    pop rax",
                      "    pop rbx",
                      "    add rax, rbx",
                      "    push rax")
        elif op == OpType.SUB:
            self.emit("    ;; -- minus --",
                      "    pop rax",
                      "    pop rbx",
                      "    sub rbx, rax",
                      "    push rbx")
        elif op == OpType.EQUAL:
            self.emit("    ;; -- equal --",
                      "    mov rcx, 0",
                      "    mov rdx, 1",
                      "    pop rax",
                      "    pop rbx",
                      "    cmp rax, rbx",
                      "    cmove rcx, rdx",
                      "    push rcx")
        elif op == OpType.GREATER:
            self.emit("    ;; -- gt --",
                      "    mov rcx, 0",
                      "    mov rdx, 1",
                      "    pop rbx",
                      "    pop rax",
                      "    cmp rax, rbx",
                      "    cmovg rcx, rdx",
                      "    push rcx")
        elif op == OpType.DUPLICATE:
            self.emit("    ;; -- dup --",
                      "    pop rax",
                      "    push rax",
                      "    push rax")
        elif op == OpType.PRINT:
            self.emit("    ;; -- dump --",
                      "    pop rdi",
                      "    call dump")
        elif op == OpType.IF or op == OpType.DO:
            self.emit(f"    ;; -- {op.value} --",
                      "    pop rax",
                      "    test rax, rax",
                      f"    jz {self.label(self.target(token))}")
        elif op == OpType.ELSE:
            self.emit("    ;; -- else --",
                      f"    jmp {self.label(self.target(token))}")
        elif op == OpType.END:
            target = self.target(token)
            self.emit("    ;; -- end --")
            # A jump to the next instruction is a plain block join
            if target != index + 1:
                self.emit(f"    jmp {self.label(target)}")
        elif op == OpType.WHILE:
            self.emit("    ;; -- while --")
        else:
            raise ValueError(f"Unknown opcode: {op}")

    def write(self, output_path: str):
        """Generate the assembly and write it to a file."""
        text = self.generate()
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(text)


def generate_nasm(program: Sequence[Token]) -> str:
    """Generate NASM assembly text for a resolved program."""
    return CodeGenerator(program).generate()
