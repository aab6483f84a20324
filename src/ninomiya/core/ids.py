"""
Identity Allocator - Issues notification ids.

Ids start at 1 and increase monotonically. After the unsigned 32-bit
range is exhausted the counter wraps back to 1, skipping any id that is
still live.
"""

from collections.abc import Callable

from ..models import FIRST_ID

__all__ = ["IdentityAllocator", "MAX_ID"]

# Notification ids travel as D-Bus uint32
MAX_ID = 2**32 - 1


class IdentityAllocator:
    """Monotonic id counter.

    allocate() never suspends, so on the event loop it is atomic with
    respect to every other coroutine touching the store.

    Example:
        allocator = IdentityAllocator(is_live=store.contains)
        nid = allocator.allocate()
    """

    def __init__(
        self,
        is_live: Callable[[int], bool] | None = None,
        start: int = FIRST_ID,
        max_id: int = MAX_ID,
    ) -> None:
        if not FIRST_ID <= start <= max_id:
            raise ValueError(f"start must be within 1..{max_id}")
        self._is_live = is_live or (lambda _id: False)
        self._next = start
        self._max = max_id

    @property
    def next_id(self) -> int:
        """The id the next allocate() call will try first."""
        return self._next

    def is_live(self, notification_id: int) -> bool:
        return self._is_live(notification_id)

    def allocate(self) -> int:
        """Return a positive id not currently live.

        Raises:
            RuntimeError: If every id in the range is live
        """
        for _ in range(self._max):
            candidate = self._next
            self._next = candidate + 1 if candidate < self._max else FIRST_ID
            if not self._is_live(candidate):
                return candidate
        raise RuntimeError("No notification ids left")
