"""Data models for the job board client state."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

SALARY_FLOOR = 0
SALARY_CEILING = 300000

WORK_MODES = ("Remote", "Hybrid", "On-site")

_RECORD_FIELDS = {
    # attribute name -> serialized key
    'title': 'title',
    'company': 'company',
    'location': 'location',
    'job_type': 'type',
    'salary': 'salary',
    'description': 'description',
    'url': 'url',
    'source': 'source',
}


def make_job_id(title: Optional[str], company: Optional[str], source: Optional[str]) -> str:
    """Build the composite identifier used when a listing has no server-issued id.

    Two listings with identical title, company and source collide.
    """
    return f"{title or 'untitled'}-{company or 'company'}-{source or 'unknown'}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _text(data: Dict[str, Any], key: str, default: str = '') -> str:
    """String field of a persisted entry; anything but a string is malformed."""
    value = data.get(key)
    if value is None or value == '':
        return default
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class JobRecord:
    """Snapshot of a job listing's display fields.

    Attributes:
        id: Stable identifier (server-issued, or composite of title/company/source)
        title: Job title
        company: Company name
        location: Job location (e.g., "Austin, TX", "Remote")
        job_type: Employment type (e.g., "Full-time"), serialized as ``type``
        salary: Free-form salary text (e.g., "$120,000 - $150,000")
        description: Job description
        url: Link to the original posting
        source: Upstream board the listing came from
    """
    id: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Job ID is required and must be a non-empty string")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JobRecord':
        """Validate and normalize a raw listing received from the outside world.

        Args:
            data: Raw listing mapping (``type`` or ``job_type`` accepted)

        Returns:
            JobRecord: Normalized record

        Raises:
            ValueError: If data is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError(f"Job data must be a mapping, got {type(data).__name__}")
        values = {}
        for attr, key in _RECORD_FIELDS.items():
            raw = data.get(key, data.get(attr))
            values[attr] = _clean(raw)
        job_id = _clean(data.get('id'))
        if job_id is None:
            job_id = make_job_id(values['title'], values['company'], values['source'])
        return cls(id=job_id, **values)

    def to_dict(self) -> Dict[str, Any]:
        result = {'id': self.id}
        for attr, key in _RECORD_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        return result


def normalize_jobs(raw_jobs: List[Any]) -> List[JobRecord]:
    """Convert raw listings to JobRecords, skipping null or malformed entries."""
    records = []
    for raw in raw_jobs or []:
        if raw is None:
            continue
        if isinstance(raw, JobRecord):
            records.append(raw)
            continue
        try:
            records.append(JobRecord.from_dict(raw))
        except ValueError:
            continue
    return records


@dataclass(frozen=True)
class JobFiltersState:
    """Current salary / type / work-mode / experience selection.

    The default value constrains nothing; a dimension is active only when
    it diverges from it.
    """
    salary_range: Tuple[int, int] = (SALARY_FLOOR, SALARY_CEILING)
    job_types: Tuple[str, ...] = ()
    work_mode: Tuple[str, ...] = ()
    experience_level: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers while keeping the instance hashable
        object.__setattr__(self, 'salary_range', tuple(int(v) for v in self.salary_range))
        object.__setattr__(self, 'job_types', tuple(self.job_types))
        object.__setattr__(self, 'work_mode', tuple(self.work_mode))
        object.__setattr__(self, 'experience_level', tuple(self.experience_level))
        for values in (self.job_types, self.work_mode, self.experience_level):
            if not all(isinstance(value, str) for value in values):
                raise ValueError("filter values must be strings")
        if len(self.salary_range) != 2:
            raise ValueError("salary_range must have exactly two values")
        if self.salary_range[0] > self.salary_range[1]:
            raise ValueError("salary_range minimum must not exceed maximum")

    @property
    def salary_active(self) -> bool:
        return self.salary_range[0] > SALARY_FLOOR or self.salary_range[1] < SALARY_CEILING

    @property
    def active_count(self) -> int:
        """Number of filter dimensions diverging from the default."""
        return sum([
            self.salary_active,
            bool(self.job_types),
            bool(self.work_mode),
            bool(self.experience_level),
        ])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'salaryRange': list(self.salary_range),
            'jobTypes': list(self.job_types),
            'workMode': list(self.work_mode),
            'experienceLevel': list(self.experience_level),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'JobFiltersState':
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("filters must be an object")
        return cls(
            salary_range=data.get('salaryRange', (SALARY_FLOOR, SALARY_CEILING)),
            job_types=data.get('jobTypes', ()),
            work_mode=data.get('workMode', ()),
            experience_level=data.get('experienceLevel', ()),
        )


DEFAULT_FILTERS = JobFiltersState()


@dataclass(frozen=True)
class SearchHistoryEntry:
    """A past query."""
    query: str
    location: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {'query': self.query, 'location': self.location, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchHistoryEntry':
        return cls(
            query=_text(data, 'query'),
            location=_text(data, 'location'),
            timestamp=_text(data, 'timestamp') or utc_now_iso(),
        )


@dataclass(frozen=True)
class SavedSearch:
    """A named, reusable search configuration. Identity is by name."""
    name: str
    query: str = ''
    location: str = ''
    filters: JobFiltersState = DEFAULT_FILTERS
    created_at: str = field(default_factory=utc_now_iso)
    notify_on_new: bool = False

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Saved search name is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'query': self.query,
            'location': self.location,
            'filters': self.filters.to_dict(),
            'createdAt': self.created_at,
            'notifyOnNew': self.notify_on_new,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedSearch':
        return cls(
            name=data['name'],
            query=_text(data, 'query'),
            location=_text(data, 'location'),
            filters=JobFiltersState.from_dict(data.get('filters')),
            created_at=_text(data, 'createdAt') or utc_now_iso(),
            notify_on_new=bool(data.get('notifyOnNew', False)),
        )
