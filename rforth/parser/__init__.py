"""rforth block resolution - gives control words their jump targets."""

from .resolver import BlockResolver, resolve_blocks

__all__ = ['BlockResolver', 'resolve_blocks']
