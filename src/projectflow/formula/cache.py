"""Memo of computed formula values."""

from collections import OrderedDict
from typing import Any, Hashable, Optional

CacheKey = tuple[Hashable, Hashable, Hashable, str, str]


class FormulaCache:
    """In-memory memo of formula results.

    Entries are keyed by ``(sheet id, revision, row id, column id, formula)``,
    so one cache can be shared by many sheets. A sheet owner must bump its
    revision on every change for entries to stay valid. The cache belongs
    to the caller; the engine never creates one.
    """

    def __init__(self, max_entries: int = 10_000):
        self._entries: OrderedDict[CacheKey, Any] = OrderedDict()
        self._max_entries = max_entries
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(
        sheet_id: Hashable,
        revision: Hashable,
        row_id: Hashable,
        column_id: str,
        formula: str,
    ) -> CacheKey:
        return (sheet_id, revision, row_id, column_id, formula)

    def get(self, key: CacheKey) -> tuple[bool, Optional[Any]]:
        """
        Look up a computed value.

        Args:
            key: Key built with make_key

        Returns:
            (found, value) - found is False on a miss
        """
        if key not in self._entries:
            self.misses += 1
            return False, None
        self._entries.move_to_end(key)
        self.hits += 1
        return True, self._entries[key]

    def store(self, key: CacheKey, value: Any):
        """Store a computed value, evicting the least recently used entry when full."""
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def invalidate_before(self, sheet_id: Hashable, revision: Any) -> int:
        """
        Drop a sheet's entries computed for older integer revisions.

        Returns:
            Number of entries removed
        """
        if not isinstance(revision, int):
            return 0
        stale = [
            key
            for key in self._entries
            if key[0] == sheet_id and isinstance(key[1], int) and key[1] < revision
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self):
        """Clear all entries."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def size(self) -> int:
        """Get the current number of entries."""
        return len(self._entries)
