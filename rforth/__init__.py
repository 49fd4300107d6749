"""
rforth - a small toolchain for a stack-based language with structured blocks.

Source programs are lexed into tokens, their if/else/while/do/end blocks are
resolved into absolute jump targets, and the resolved program is either
simulated directly or compiled to x86-64 NASM assembly.
"""

__version__ = "0.1.0"
__author__ = "rforth project"
