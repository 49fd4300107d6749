"""rforth interpreter - simulates resolved programs."""

from .interpreter import Interpreter, simulate_program

__all__ = ['Interpreter', 'simulate_program']
