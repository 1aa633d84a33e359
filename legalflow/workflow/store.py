"""In-memory review item store with per-item locking."""

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from legalflow.errors import ItemNotFoundError

from .models import ReviewItem, ReviewStatus


class ReviewItemStore:
    """Holds review items for the lifetime of the process.

    Items are never deleted. Readers get deep copies; writers go through
    :meth:`locked`, which serialises all changes to one item. A store-level
    lock guards the index itself.
    """

    def __init__(self) -> None:
        self._items: dict[str, ReviewItem] = {}
        self._item_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self._sequence = 0

    def add(self, item: ReviewItem) -> ReviewItem:
        with self._lock:
            if item.id in self._items:
                raise ValueError(f"Duplicate review item id: {item.id}")
            self._sequence += 1
            item.sequence = self._sequence
            self._items[item.id] = item
            self._item_locks[item.id] = threading.Lock()
            return copy.deepcopy(item)

    def get(self, item_id: str) -> ReviewItem:
        """Snapshot of one item.

        Raises:
            ItemNotFoundError: If no item has this id.
        """
        with self._item_lock(item_id):
            return copy.deepcopy(self._items[item_id])

    @contextmanager
    def locked(self, item_id: str) -> Iterator[ReviewItem]:
        """Yield the live item while holding its lock.

        Changes made inside the block are visible to later readers only
        once the block exits.
        """
        with self._item_lock(item_id):
            yield self._items[item_id]

    def _item_lock(self, item_id: str) -> threading.Lock:
        with self._lock:
            lock = self._item_locks.get(item_id)
        if lock is None:
            raise ItemNotFoundError(item_id)
        return lock

    def ids(self, status: ReviewStatus | None = None) -> list[str]:
        """Item ids in submission order, optionally filtered by status."""
        with self._lock:
            items = list(self._items.values())
        return [i.id for i in items if status is None or i.status == status]

    def snapshots(self, status: ReviewStatus | None = None) -> list[ReviewItem]:
        return [self.get(item_id) for item_id in self.ids(status)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
