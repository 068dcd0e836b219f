"""Job filtering, ordering and pagination.

Everything here is a pure function of its inputs. The browse pipeline runs
in a fixed order: shuffle (only when browsing without a query or location),
filter, location-proximity sort, paginate.
"""
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Optional, Sequence
import logging
import math
import random
import re

from .models import DEFAULT_FILTERS, JobFiltersState, JobRecord

logger = logging.getLogger(__name__)

PAGE_SIZE = 20

_DIGITS = re.compile(r'\d+')
_THOUSANDS_SEPARATOR = re.compile(r'(?<=\d)[,.](?=\d{3}\b)')


def shuffle_jobs(jobs: Sequence[JobRecord], rng: Optional[random.Random] = None) -> List[JobRecord]:
    """Return a uniformly random permutation of jobs (Fisher-Yates).

    Args:
        jobs: Jobs to shuffle; the input is not modified
        rng: Random source, defaults to the module-level generator

    Returns:
        List[JobRecord]: Shuffled copy
    """
    rng = rng or random
    shuffled = list(jobs)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def parse_salary(salary_str: Optional[str]) -> Optional[int]:
    """Parse the first number in a salary string.

    Args:
        salary_str: Salary text (e.g., "$120,000 - $150,000")

    Returns:
        Optional[int]: 120000 for the example above, None when no digits
    """
    if not salary_str:
        return None
    cleaned = _THOUSANDS_SEPARATOR.sub('', str(salary_str))
    match = _DIGITS.search(cleaned)
    if not match:
        return None
    return int(match.group())


def classify_work_mode(job: JobRecord) -> dict:
    text = ' '.join((job.location or '', job.title or '', job.description or '')).lower()
    has_remote = 'remote' in text
    has_hybrid = 'hybrid' in text
    return {
        'Remote': has_remote,
        'Hybrid': has_hybrid,
        'On-site': not has_remote and not has_hybrid,
    }


class JobFilter:
    """Applies a JobFiltersState to job lists."""

    def __init__(self, filters: JobFiltersState = DEFAULT_FILTERS):
        self.filters = filters
        self._job_types = [t.lower() for t in filters.job_types]
        self._levels = [level.lower() for level in filters.experience_level]

    def matches_salary(self, job: JobRecord) -> bool:
        """Check if job salary falls within the selected range.

        Jobs without a parsable salary always pass.
        """
        if not self.filters.salary_active:
            return True
        salary = parse_salary(job.salary)
        if salary is None:
            return True
        low, high = self.filters.salary_range
        return low <= salary <= high

    def matches_job_type(self, job: JobRecord) -> bool:
        if not self._job_types:
            return True
        job_type = (job.job_type or '').lower()
        return any(t in job_type for t in self._job_types)

    def matches_work_mode(self, job: JobRecord) -> bool:
        if not self.filters.work_mode:
            return True
        modes = classify_work_mode(job)
        return any(modes.get(mode, False) for mode in self.filters.work_mode)

    def matches_experience(self, job: JobRecord) -> bool:
        if not self._levels:
            return True
        text = f"{job.title or ''} {job.description or ''}".lower()
        return any(level in text for level in self._levels)

    def matches(self, job: JobRecord) -> bool:
        return (self.matches_salary(job) and
                self.matches_job_type(job) and
                self.matches_work_mode(job) and
                self.matches_experience(job))

    def filter_jobs(self, jobs: Sequence[Optional[JobRecord]]) -> List[JobRecord]:
        """Filter a list of jobs, skipping null entries.

        Args:
            jobs: Jobs to filter

        Returns:
            List[JobRecord]: Jobs passing every active filter, in input order
        """
        filtered_jobs = []
        for job in jobs:
            if job is None:
                continue
            if self.matches(job):
                filtered_jobs.append(job)
            else:
                logger.debug(f"Filtering out job: {job.title} at {job.company}")
        return filtered_jobs


def extract_city(location: Optional[str]) -> str:
    """City part of a location: text before the first comma, lower-cased."""
    if not location:
        return ''
    return location.split(',', 1)[0].strip().lower()


def sort_by_location(jobs: Sequence[JobRecord], location: Optional[str]) -> List[JobRecord]:
    """Order jobs by proximity to the user's location.

    Exact city matches first, then partial matches, then non-remote before
    remote. Ties keep their relative order.
    """
    user_city = extract_city(location)
    if not user_city:
        return list(jobs)

    def rank(job: JobRecord):
        loc = (job.location or '').lower()
        city = extract_city(job.location)
        exact = city == user_city
        partial = user_city in loc and not exact
        remote = 'remote' in loc
        return exact, partial, remote

    def compare(a: JobRecord, b: JobRecord) -> int:
        exact_a, partial_a, remote_a = rank(a)
        exact_b, partial_b, remote_b = rank(b)
        if exact_a != exact_b:
            return -1 if exact_a else 1
        if partial_a != partial_b:
            return -1 if partial_a else 1
        if remote_a != remote_b:
            return 1 if remote_a else -1
        return 0

    return sorted(jobs, key=cmp_to_key(compare))


@dataclass(frozen=True)
class Page:
    items: List[JobRecord]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict:
        return {
            'jobs': [job.to_dict() for job in self.items],
            'pagination': {
                'page': self.page,
                'per_page': self.page_size,
                'total': self.total,
                'pages': self.total_pages,
            },
        }


def paginate(jobs: Sequence[JobRecord], page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    """Slice one 1-indexed page out of jobs."""
    if page < 1:
        raise ValueError("page must be 1 or greater")
    if page_size < 1:
        raise ValueError("page_size must be 1 or greater")
    start = (page - 1) * page_size
    return Page(items=list(jobs[start:start + page_size]), page=page, page_size=page_size, total=len(jobs))


def browse(
    jobs: Sequence[Optional[JobRecord]],
    query: str = '',
    location: str = '',
    filters: JobFiltersState = DEFAULT_FILTERS,
    rng: Optional[random.Random] = None,
) -> List[JobRecord]:
    """Run the full shuffle / filter / sort pipeline."""
    present = [job for job in jobs if job is not None]
    query = (query or '').strip()
    location = (location or '').strip()
    if not query and not location:
        present = shuffle_jobs(present, rng)
    filtered = JobFilter(filters).filter_jobs(present)
    return sort_by_location(filtered, location)


@dataclass
class BrowseSession:
    """Query, location, filters and page for one browsing view.

    Changing the query, location or filters, or refreshing, goes back to
    page 1. The shuffle is seeded per refresh generation so paging through
    one generation shows every job exactly once.
    """
    query: str = ''
    location: str = ''
    filters: JobFiltersState = DEFAULT_FILTERS
    page: int = 1
    page_size: int = PAGE_SIZE
    refresh_key: int = 0
    seed: int = field(default_factory=lambda: random.randrange(2 ** 32))

    def set_query(self, query: str) -> None:
        if query != self.query:
            self.query = query
            self.page = 1

    def set_location(self, location: str) -> None:
        if location != self.location:
            self.location = location
            self.page = 1

    def set_filters(self, filters: JobFiltersState) -> None:
        if filters != self.filters:
            self.filters = filters
            self.page = 1

    def go_to(self, page: int) -> None:
        if page < 1:
            raise ValueError("page must be 1 or greater")
        self.page = page

    def refresh(self) -> None:
        """New shuffle, same filters."""
        self.refresh_key += 1
        self.page = 1

    def ordered(self, jobs: Sequence[Optional[JobRecord]]) -> List[JobRecord]:
        rng = random.Random(f"{self.seed}:{self.refresh_key}")
        return browse(jobs, self.query, self.location, self.filters, rng)

    def current_page(self, jobs: Sequence[Optional[JobRecord]]) -> Page:
        return paginate(self.ordered(jobs), self.page, self.page_size)
