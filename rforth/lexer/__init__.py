"""rforth Lexer - Splits source text into located tokens."""

from .lexer import Lexer, lex_file

__all__ = ['Lexer', 'lex_file']
