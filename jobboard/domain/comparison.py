"""Working set of jobs selected for side-by-side comparison."""
from typing import List
import logging

from ..errors import CapacityExceeded, Result
from ..models import JobRecord
from ..storage import KeyValueStore
from .base import PersistentStore

logger = logging.getLogger(__name__)

COMPARE_KEY = 'compareJobs'
MAX_COMPARE = 3


class ComparisonStore(PersistentStore):
    """At most three jobs; a fourth add is rejected, never evicting."""

    KEYS = (COMPARE_KEY,)

    def __init__(self, storage: KeyValueStore):
        self._items: List[JobRecord] = []
        super().__init__(storage)

    def _load(self) -> None:
        items = []
        for data in self._read(COMPARE_KEY, list, []):
            if not isinstance(data, dict):
                continue
            try:
                record = JobRecord.from_dict(data)
            except ValueError:
                continue
            if any(item.id == record.id for item in items):
                continue
            items.append(record)
        if len(items) > MAX_COMPARE:
            logger.warning(f"Stored comparison has {len(items)} jobs, keeping the first {MAX_COMPARE}")
        self._items = items[:MAX_COMPARE]

    def _persist(self) -> None:
        self._write({COMPARE_KEY: [record.to_dict() for record in self._items]})

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def can_add_more(self) -> bool:
        return self.count < MAX_COMPARE

    def items(self) -> List[JobRecord]:
        return list(self._items)

    def is_in_compare(self, job_id: str) -> bool:
        return any(item.id == job_id for item in self._items)

    def add(self, record: JobRecord) -> Result:
        """Add record to the comparison.

        Args:
            record: Job to compare

        Returns:
            Result: Success (also when already present) or CapacityExceeded
        """
        if self.is_in_compare(record.id):
            return Result.success()
        if not self.can_add_more:
            logger.info(f"Comparison full, rejected {record.id}")
            return Result.failure(CapacityExceeded(MAX_COMPARE))
        self._items.append(record)
        self._persist()
        return Result.success()

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
