"""
Block resolver - cross-references structured control words.

Walks the token sequence once, keeping a stack of the positions of open
blocks, and gives every if/else/end/do an absolute jump target:

- if:   where to go when the condition is false (after else, or the end)
- else: the end of the block, skipping the else-body
- do:   one past the loop's end, i.e. the loop exit
- end:  its own successor for if/else blocks, the matching while for loops

With that layout both back-ends treat `end` the same way: an unconditional
jump to its target.
"""

from typing import Dict, List, Sequence

from ..errors import StructuralError
from ..program import OpType, Program, Token


class BlockResolver:
    """Resolves the jump targets of one token sequence."""

    def __init__(self, tokens: Sequence[Token]):
        self.tokens: List[Token] = list(tokens)
        self.pending: List[int] = []  # positions of open if/else/while/do
        self.anchors: Dict[int, int] = {}  # do position -> while position

    def error(self, message: str, token: Token):
        """Raise a structural error at a token's location."""
        raise StructuralError(message, token.loc)

    def pop_block(self, token: Token) -> int:
        """Pop the innermost open block, failing if there is none."""
        if not self.pending:
            self.error(f"'{token.op.value}' has no open block to close (stack is empty)", token)
        return self.pending.pop()

    def patch(self, index: int, target: int):
        self.tokens[index] = self.tokens[index].with_target(target)

    def resolve(self) -> Program:
        """
        Resolve every block in the sequence.

        Returns:
            The resolved program as an immutable tuple, same length as the input

        Raises:
            StructuralError: on a stray else/do/end or an unclosed block
        """
        for idx, token in enumerate(self.tokens):
            op = token.op

            if op == OpType.IF or op == OpType.WHILE:
                self.pending.append(idx)

            elif op == OpType.ELSE:
                if_idx = self.pop_block(token)
                if self.tokens[if_idx].op != OpType.IF:
                    self.error("'else' can only close 'if' blocks", token)
                self.patch(if_idx, idx + 1)
                self.pending.append(idx)

            elif op == OpType.DO:
                while_idx = self.pop_block(token)
                if self.tokens[while_idx].op != OpType.WHILE:
                    self.error("'do' can only close 'while' blocks", token)
                self.anchors[idx] = while_idx
                self.pending.append(idx)

            elif op == OpType.END:
                block_idx = self.pop_block(token)
                block_op = self.tokens[block_idx].op
                if block_op == OpType.IF or block_op == OpType.ELSE:
                    self.patch(block_idx, idx)
                    self.patch(idx, idx + 1)
                elif block_op == OpType.DO:
                    self.patch(block_idx, idx + 1)
                    self.patch(idx, self.anchors.pop(block_idx))
                else:
                    self.error("'end' can only close 'if', 'else' or 'do' blocks", token)

        if self.pending:
            innermost = self.tokens[self.pending[-1]]
            self.error(f"unclosed '{innermost.op.value}' block", innermost)

        return tuple(self.tokens)


def resolve_blocks(tokens: Sequence[Token]) -> Program:
    """Resolve the jump targets of a lexed token sequence."""
    return BlockResolver(tokens).resolve()
