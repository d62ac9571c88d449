"""
Ordered logo slots for the multi-logo layout.
"""

import logging
from typing import List, Optional

from .compositor import LogoLayer
from .presets import MAX_LOGOS

logger = logging.getLogger(__name__)


class LogoSlots:
    """
    Fixed-order list of 1..MAX_LOGOS slots, each empty or holding a logo.

    Slots keep their position when the count changes or a logo is
    removed. Images of replaced or dropped logos are closed.
    """

    def __init__(self, count: int = 3):
        self._check_count(count)
        self._slots: List[Optional[LogoLayer]] = [None] * count

    @staticmethod
    def _check_count(count: int) -> None:
        if not 1 <= count <= MAX_LOGOS:
            raise ValueError(f"Logo count must be between 1 and {MAX_LOGOS}, got {count}")

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Optional[LogoLayer]:
        return self._slots[index]

    def resize(self, count: int) -> None:
        """Change the slot count, keeping existing slots in order."""
        self._check_count(count)
        for dropped in self._slots[count:]:
            self._release(dropped)
        kept = self._slots[:count]
        self._slots = kept + [None] * (count - len(kept))
        logger.debug(f"Logo slots resized to {count}")

    def assign(self, index: int, layer: LogoLayer) -> None:
        """Put a logo into a slot, replacing any previous one."""
        self._release(self._slots[index])
        self._slots[index] = layer

    def clear(self, index: int) -> None:
        """Empty one slot."""
        self._release(self._slots[index])
        self._slots[index] = None

    def reset(self) -> None:
        """Empty every slot, keeping the count."""
        for index in range(len(self._slots)):
            self.clear(index)

    def layers(self) -> List[Optional[LogoLayer]]:
        """Slot entries in display order, None for empty slots."""
        return list(self._slots)

    def has_logo(self) -> bool:
        return any(layer is not None for layer in self._slots)

    @staticmethod
    def _release(layer: Optional[LogoLayer]) -> None:
        if layer is not None:
            layer.image.close()
