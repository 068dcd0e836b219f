"""Saved (bookmarked) jobs with snapshot-based undo."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..models import JobRecord
from ..storage import KeyValueStore
from .base import PersistentStore

logger = logging.getLogger(__name__)

SAVED_IDS_KEY = 'savedJobs'
SAVED_OBJECTS_KEY = 'savedJobsObjects'

DEFAULT_MILESTONES = (1, 5, 10, 25, 50, 100)


@dataclass(frozen=True)
class SavedJobsSnapshot:
    """The id set and id->record map as they were at one point in time."""
    ids: Tuple[str, ...]
    records: Tuple[Tuple[str, JobRecord], ...]

    def records_dict(self) -> Dict[str, JobRecord]:
        return dict(self.records)


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a toggle.

    Attributes:
        was_saved: Whether the job was saved before the toggle
        snapshot: State before the toggle; pass to ``restore`` to undo
        milestone: Save count reached, when it is a configured milestone
    """
    job_id: str
    was_saved: bool
    snapshot: SavedJobsSnapshot
    milestone: Optional[int] = None

    @property
    def is_saved(self) -> bool:
        return not self.was_saved


class SavedJobsStore(PersistentStore):
    """Mapping of job id to JobRecord plus the companion id set.

    Both structures are persisted in a single ``set_many`` call so their
    key sets stay equal in storage as well as in memory.
    """

    KEYS = (SAVED_IDS_KEY, SAVED_OBJECTS_KEY)

    def __init__(self, storage: KeyValueStore, milestones: Sequence[int] = DEFAULT_MILESTONES):
        self.milestones = frozenset(int(m) for m in milestones)
        self._ids: List[str] = []
        self._records: Dict[str, JobRecord] = {}
        super().__init__(storage)

    def _load(self) -> None:
        raw_ids = self._read(SAVED_IDS_KEY, list, [])
        raw_records = self._read(SAVED_OBJECTS_KEY, dict, {})

        records: Dict[str, JobRecord] = {}
        for job_id, data in raw_records.items():
            if not isinstance(data, dict):
                continue
            try:
                record = JobRecord.from_dict({**data, 'id': job_id})
            except ValueError:
                continue
            records[job_id] = record

        # The record map is authoritative: it is the only one able to render a job
        ids = [job_id for job_id in dict.fromkeys(raw_ids) if isinstance(job_id, str) and job_id in records]
        ids.extend(job_id for job_id in records if job_id not in ids)

        self._ids = ids
        self._records = {job_id: records[job_id] for job_id in ids}

        if ids != raw_ids or set(records) != set(raw_records):
            logger.warning(
                f"Repaired saved jobs: {len(raw_ids)} ids / {len(raw_records)} records "
                f"-> {len(ids)} saved jobs"
            )
            self._persist()

    def _persist(self) -> None:
        self._write({
            SAVED_IDS_KEY: list(self._ids),
            SAVED_OBJECTS_KEY: {job_id: self._records[job_id].to_dict() for job_id in self._ids},
        })

    @property
    def count(self) -> int:
        return len(self._ids)

    def is_saved(self, job_id: str) -> bool:
        return job_id in self._records

    def ids(self) -> List[str]:
        return list(self._ids)

    def records(self) -> List[JobRecord]:
        """Saved records in the order they were saved."""
        return [self._records[job_id] for job_id in self._ids]

    def get(self, job_id: str) -> Optional[JobRecord]:
        return self._records.get(job_id)

    def snapshot(self) -> SavedJobsSnapshot:
        return SavedJobsSnapshot(
            ids=tuple(self._ids),
            records=tuple((job_id, self._records[job_id]) for job_id in self._ids),
        )

    def toggle(self, job_id: str, record: Optional[JobRecord] = None) -> ToggleResult:
        """Save the job if it is not saved, unsave it otherwise.

        Args:
            job_id: Identifier of the job
            record: Full record; required when saving

        Returns:
            ToggleResult: Previous state and milestone information

        Raises:
            ValueError: If saving without a record, or with a record for another id
        """
        previous = self.snapshot()
        if self.is_saved(job_id):
            self._ids.remove(job_id)
            del self._records[job_id]
            self._persist()
            logger.debug(f"Unsaved job {job_id}")
            return ToggleResult(job_id=job_id, was_saved=True, snapshot=previous)

        if record is None:
            raise ValueError(f"Cannot save job {job_id} without its record")
        if record.id != job_id:
            raise ValueError(f"Record id {record.id!r} does not match job id {job_id!r}")

        self._ids.append(job_id)
        self._records[job_id] = record
        self._persist()
        logger.debug(f"Saved job {job_id}")

        milestone = self.count if self.count in self.milestones else None
        return ToggleResult(job_id=job_id, was_saved=False, snapshot=previous, milestone=milestone)

    def restore(self, snapshot: SavedJobsSnapshot) -> None:
        """Reinstate a snapshot verbatim (undo)."""
        self._ids = list(snapshot.ids)
        self._records = snapshot.records_dict()
        self._persist()
        logger.debug(f"Restored saved jobs snapshot ({len(self._ids)} jobs)")

    def clear_all(self) -> None:
        self._ids = []
        self._records = {}
        self._persist()
