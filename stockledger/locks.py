"""Per-product mutual exclusion for ledger writes."""
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator


class ProductLockRegistry:
    """
    Hands out one lock per product id.

    Writers touching the same product are serialized; writers touching
    disjoint products proceed in parallel. Locks are always taken in
    ascending id order so overlapping writers cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, product_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = self._locks[product_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, product_ids: Iterable[int]) -> Iterator[list[int]]:
        """Acquire the locks of all given products for the duration of the block."""
        ordered = sorted(set(product_ids))
        acquired = []
        try:
            for product_id in ordered:
                lock = self._lock_for(product_id)
                lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)
