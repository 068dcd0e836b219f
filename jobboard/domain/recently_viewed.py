"""Bounded, recency-ordered list of viewed jobs."""
from typing import List
import logging

from ..models import JobRecord
from ..storage import KeyValueStore
from .base import PersistentStore

logger = logging.getLogger(__name__)

RECENTLY_VIEWED_KEY = 'recentlyViewedJobs'
DEFAULT_MAX_RECENT = 20


class RecentlyViewedStore(PersistentStore):
    """Most-recent-first list without duplicate ids."""

    KEYS = (RECENTLY_VIEWED_KEY,)

    def __init__(self, storage: KeyValueStore, max_items: int = DEFAULT_MAX_RECENT):
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.max_items = max_items
        self._items: List[JobRecord] = []
        super().__init__(storage)

    def _load(self) -> None:
        items = []
        seen = set()
        for data in self._read(RECENTLY_VIEWED_KEY, list, []):
            if not isinstance(data, dict):
                continue
            try:
                record = JobRecord.from_dict(data)
            except ValueError:
                continue
            if record.id in seen:
                continue
            seen.add(record.id)
            items.append(record)
        self._items = items[:self.max_items]

    def _persist(self) -> None:
        self._write({RECENTLY_VIEWED_KEY: [record.to_dict() for record in self._items]})

    def items(self) -> List[JobRecord]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def record_view(self, record: JobRecord) -> None:
        """Put record at the front, dropping any older entry with the same id."""
        self._items = [record] + [item for item in self._items if item.id != record.id]
        del self._items[self.max_items:]
        self._persist()

    def remove(self, job_id: str) -> bool:
        remaining = [item for item in self._items if item.id != job_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._persist()
        return True

    def clear_all(self) -> None:
        self._items = []
        self._persist()
