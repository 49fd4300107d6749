"""
Error types raised by the rforth toolchain.

Every stage raises instead of terminating the process; the command-line
driver decides how to report the failure.
"""

from typing import Optional

from .program import SourceLocation


class RForthError(Exception):
    """Base class for all toolchain errors."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        self.location = location
        if location is not None:
            super().__init__(f"{location}: {message}")
        else:
            super().__init__(message)


class LexError(RForthError):
    """Unrecognized word or malformed integer literal."""
    pass


class StructuralError(RForthError):
    """Malformed block nesting found while resolving jump targets."""
    pass


class RuntimeFault(RForthError):
    """Fault raised while simulating a program (e.g. stack underflow)."""
    pass


class UnresolvedTargetError(RForthError):
    """A control word reached a back-end without a jump target."""
    pass


class ToolchainError(RForthError):
    """Bad input file or a failing external assembler/linker."""
    pass
