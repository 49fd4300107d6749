"""
rforth Lexer - Splits source text into located tokens.

Handles:
- Whitespace-delimited words, tracked by row and column
- Keywords (+ - . = > dup if else end while do)
- 32-bit signed integer literals
"""

import re
from typing import List, Tuple

from ..errors import LexError
from ..program import Instruction, KEYWORDS, OpType, SourceLocation, Token


LINE_BREAK = re.compile(r'\r?\n')
INT_LITERAL = re.compile(r'[+-]?[0-9]+')

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


class Lexer:
    """Tokenizes rforth source code."""

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.tokens: List[Token] = []

    def error(self, message: str, row: int, column: int):
        """Raise a lexer error with location information."""
        raise LexError(message, SourceLocation(self.filename, row, column))

    @staticmethod
    def split_words(line: str) -> List[Tuple[str, int]]:
        """Return (word, column) pairs for every word on a line."""
        return [(m.group(), m.start() + 1) for m in re.finditer(r'\S+', line)]

    def parse_word(self, word: str, row: int, column: int) -> Instruction:
        """Turn a single word into an instruction."""
        op = KEYWORDS.get(word)
        if op is not None:
            return Instruction(op)

        if not INT_LITERAL.fullmatch(word):
            self.error(f"unknown word '{word}'", row, column)
        value = int(word)
        if not INT32_MIN <= value <= INT32_MAX:
            self.error(f"integer literal '{word}' does not fit in 32 bits", row, column)
        return Instruction(OpType.PUSH_INT, value=value)

    @staticmethod
    def split_lines(source: str) -> List[str]:
        """Split on newlines only, dropping carriage returns before them and the empty piece after a final newline."""
        lines = LINE_BREAK.split(source)
        if lines[-1] == '':
            lines.pop()
        return lines

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source."""
        lines = self.split_lines(self.source)
        if not lines:
            raise LexError(f"{self.filename}: no lines in file")

        self.tokens = []
        for row, line in enumerate(lines, start=1):
            for word, column in self.split_words(line):
                instr = self.parse_word(word, row, column)
                self.tokens.append(Token(SourceLocation(self.filename, row, column), instr))
        return self.tokens


def lex_file(path: str) -> List[Token]:
    """Read a source file and tokenize it."""
    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            source = f.read()
    except UnicodeDecodeError as e:
        raise LexError(f"{path}: unable to get lines: {e}") from e
    return Lexer(source, str(path)).tokenize()
