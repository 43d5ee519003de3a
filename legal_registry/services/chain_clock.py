"""
Chain Clock - logical time supplied to the registry.

Block height only moves forward and only the host advances it.
"""

import logging

logger = logging.getLogger(__name__)


class ChainClock:
    """Monotonic block-height counter."""

    def __init__(self, genesis_height: int = 0):
        if genesis_height < 0:
            raise ValueError(f"Block height cannot be negative, got {genesis_height}")
        self._height = genesis_height

    @property
    def height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the chain forward. Returns the new height."""
        if blocks < 0:
            raise ValueError(f"Block height cannot move backwards (blocks={blocks})")
        self._height += blocks
        logger.debug("Block height advanced by %d to %d", blocks, self._height)
        return self._height

    def sync_to(self, height: int) -> int:
        """Jump to a given height; never rewinds."""
        if height < self._height:
            raise ValueError(f"Block height cannot move backwards ({self._height} -> {height})")
        self._height = height
        return self._height

    def restore(self, height: int) -> None:
        """Reset to a checkpointed height. Only for undoing a call that failed to save."""
        if height < 0:
            raise ValueError(f"Block height cannot be negative, got {height}")
        self._height = height
