"""Thread-safe unique-membership set used for discovery bookkeeping."""

import threading
from typing import Iterable, List, Optional


class DedupSet:
    """Set of strings safe for concurrent add/has and snapshot reads.

    Reads (`list`, `difference`) see every `add` that completed before
    the call. Returned lists are copies; mutating them never touches the set.
    """

    def __init__(self, items: Optional[Iterable[str]] = None):
        self._items = {}
        self._lock = threading.Lock()
        for item in items or ():
            self.add(item)

    def add(self, value: str) -> bool:
        """Add a value.

        Args:
            value: Value to add

        Returns:
            True if the value was new, False if it was already present
        """
        with self._lock:
            if value in self._items:
                return False
            self._items[value] = None
            return True

    def has(self, value: str) -> bool:
        """Check membership."""
        with self._lock:
            return value in self._items

    def list(self) -> List[str]:
        """Snapshot of the members in insertion order."""
        with self._lock:
            return list(self._items)

    def difference(self, other: "DedupSet") -> List[str]:
        """Members of this set that are absent from `other`.

        Args:
            other: Set to subtract

        Returns:
            List of values in insertion order
        """
        theirs = set(other.list())
        return [item for item in self.list() if item not in theirs]

    def __contains__(self, value: str) -> bool:
        return self.has(value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __repr__(self) -> str:
        return f"DedupSet({self.list()!r})"
