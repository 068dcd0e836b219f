"""Cached job search and debounced location suggestions."""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import JobBoardError
from ..models import JobRecord

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


@dataclass
class CacheEntry:
    jobs: List[JobRecord]
    fetched_at: datetime


@dataclass(frozen=True)
class SearchResults:
    """Jobs to display plus how fresh they are.

    Attributes:
        jobs: Result set (possibly stale, possibly from the previous search)
        stale: Served past its freshness window
        revalidating: A background refetch is in flight
        error: Failure of the latest fetch, previous results kept
    """
    jobs: List[JobRecord]
    stale: bool = False
    revalidating: bool = False
    error: Optional[JobBoardError] = None


class SearchCache:
    """Stale-while-revalidate cache keyed by (query, location).

    Entries are fresh for ``stale_after``; after that they are still served
    but eligible for refetch, until ``expire_after`` drops them entirely.
    """

    def __init__(self, stale_after: timedelta = timedelta(minutes=10),
                 expire_after: timedelta = timedelta(minutes=30)):
        self.stale_after = stale_after
        self.expire_after = expire_after
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if datetime.now() - entry.fetched_at > self.expire_after:
                del self._entries[key]
                return None
            return entry

    def is_stale(self, entry: CacheEntry) -> bool:
        return datetime.now() - entry.fetched_at > self.stale_after

    def put(self, key: CacheKey, jobs: List[JobRecord]) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(jobs=list(jobs), fetched_at=datetime.now())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class JobSearchService:
    """Job search with a stale-while-revalidate cache.

    A fresh hit is served as is. A stale hit is served immediately while one
    background refetch replaces it. A miss fetches synchronously; if that
    fails, the previously displayed results stay visible and the error is
    reported alongside them.
    """

    def __init__(self, fetch: Callable[[str, str], List[JobRecord]],
                 cache: Optional[SearchCache] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.fetch = fetch
        self.cache = cache or SearchCache()
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="revalidate")
        self._pending: Dict[CacheKey, Future] = {}
        self._lock = threading.Lock()
        self.last_results: List[JobRecord] = []

    @staticmethod
    def _key(query: str, location: str) -> CacheKey:
        return ((query or '').strip().lower(), (location or '').strip().lower())

    def search(self, query: str = '', location: str = '') -> SearchResults:
        key = self._key(query, location)
        entry = self.cache.get(key)
        if entry is not None:
            self.last_results = entry.jobs
            if not self.cache.is_stale(entry):
                return SearchResults(jobs=entry.jobs)
            revalidating = self._revalidate(key, query, location)
            return SearchResults(jobs=entry.jobs, stale=True, revalidating=revalidating)

        try:
            jobs = self.fetch(query, location)
        except JobBoardError as e:
            logger.warning(f"Search failed, keeping {len(self.last_results)} previous results: {e}")
            return SearchResults(jobs=self.last_results, stale=True, error=e)
        self.cache.put(key, jobs)
        self.last_results = jobs
        return SearchResults(jobs=jobs)

    def refresh(self, query: str = '', location: str = '') -> SearchResults:
        """Drop the cached entry for this search and fetch again."""
        key = self._key(query, location)
        try:
            jobs = self.fetch(query, location)
        except JobBoardError as e:
            return SearchResults(jobs=self.last_results, stale=True, error=e)
        self.cache.put(key, jobs)
        self.last_results = jobs
        return SearchResults(jobs=jobs)

    def _revalidate(self, key: CacheKey, query: str, location: str) -> bool:
        with self._lock:
            pending = self._pending.get(key)
            if pending is not None and not pending.done():
                return True
            self._pending[key] = self.executor.submit(self._refetch, key, query, location)
            return True

    def _refetch(self, key: CacheKey, query: str, location: str) -> None:
        try:
            jobs = self.fetch(query, location)
        except JobBoardError as e:
            logger.warning(f"Background refresh of {key} failed: {e}")
            return
        self.cache.put(key, jobs)
        logger.debug(f"Revalidated {key} with {len(jobs)} jobs")

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until in-flight background refetches finish."""
        with self._lock:
            pending = list(self._pending.values())
        for future in pending:
            future.result(timeout=timeout)

    def close(self) -> None:
        self.executor.shutdown(wait=True)


class Debouncer:
    """Runs a function only after calls stop arriving for ``delay`` seconds."""

    def __init__(self, delay: float, func: Callable[..., None]):
        self.delay = delay
        self.func = func
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.func, args=args, kwargs=kwargs)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> None:
        """Wait for a pending call to run."""
        with self._lock:
            timer = self._timer
        if timer is not None:
            timer.join()


class LocationSuggester:
    """Debounced location lookups; inputs shorter than two characters clear suggestions."""

    MIN_LENGTH = 2

    def __init__(self, lookup: Callable[[str], List[str]], delay: float = 0.3):
        self.lookup = lookup
        self.suggestions: List[str] = []
        self._debouncer = Debouncer(delay, self._run)

    def update(self, text: str) -> None:
        if len(text or '') < self.MIN_LENGTH:
            self._debouncer.cancel()
            self.suggestions = []
            return
        self._debouncer(text)

    def _run(self, text: str) -> None:
        try:
            self.suggestions = self.lookup(text)
        except JobBoardError as e:
            logger.warning(f"Location search error: {e}")

    def flush(self) -> None:
        self._debouncer.flush()
