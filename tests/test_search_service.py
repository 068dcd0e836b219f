"""Tests for cached search and debounced location suggestions."""
import threading
from datetime import timedelta

import pytest
from freezegun import freeze_time

from jobboard.errors import NetworkError
from jobboard.ingest import Debouncer, JobSearchService, LocationSuggester, SearchCache


class FakeFetcher:
    """Stands in for the remote search, counting calls."""

    def __init__(self, results):
        self.results = results
        self.calls = []
        self.error = None

    def __call__(self, query, location):
        self.calls.append((query, location))
        if self.error is not None:
            raise self.error
        return list(self.results)


@pytest.fixture
def fetcher(sample_jobs):
    return FakeFetcher(sample_jobs)


@pytest.fixture
def service(fetcher):
    """Search service over the fake fetcher.

    Args:
        fetcher: Fake remote search
    """
    svc = JobSearchService(fetcher)
    yield svc
    svc.close()


class TestJobSearchService:
    """Stale-while-revalidate behaviour."""

    def test_fresh_hit_is_served_from_cache(self, service, fetcher):
        with freeze_time("2024-01-01 12:00:00") as frozen:
            first = service.search("python", "Austin")
            frozen.tick(timedelta(minutes=5))
            second = service.search("Python ", "austin")

        assert first.jobs == second.jobs
        assert not second.stale
        assert len(fetcher.calls) == 1

    def test_stale_hit_is_served_and_revalidated(self, service, fetcher, job_factory):
        with freeze_time("2024-01-01 12:00:00") as frozen:
            original = service.search("python", "")
            fetcher.results = [job_factory("fresh")]
            frozen.tick(timedelta(minutes=11))

            stale = service.search("python", "")
            service.wait(timeout=5)
            refreshed = service.search("python", "")

        assert stale.stale and stale.revalidating
        assert stale.jobs == original.jobs
        assert [job.id for job in refreshed.jobs] == ["fresh"]
        assert not refreshed.stale
        assert len(fetcher.calls) == 2

    def test_expired_entry_is_refetched(self, service, fetcher):
        with freeze_time("2024-01-01 12:00:00") as frozen:
            service.search("python", "")
            frozen.tick(timedelta(minutes=31))
            result = service.search("python", "")

        assert not result.stale
        assert len(fetcher.calls) == 2

    def test_failed_search_keeps_previous_results(self, service, fetcher):
        previous = service.search("python", "")
        fetcher.error = NetworkError("Server error. Please try again later.", kind='server_error', status=500)

        result = service.search("rust", "")

        assert result.jobs == previous.jobs
        assert result.error is fetcher.error
        assert result.stale

    def test_refresh_bypasses_cache(self, service, fetcher):
        service.search("python", "")
        service.refresh("python", "")
        assert len(fetcher.calls) == 2


def test_cache_windows_are_configurable():
    cache = SearchCache(stale_after=timedelta(minutes=1), expire_after=timedelta(minutes=2))
    with freeze_time("2024-01-01 12:00:00") as frozen:
        cache.put(("python", ""), [])
        frozen.tick(timedelta(seconds=90))
        entry = cache.get(("python", ""))
        assert entry is not None and cache.is_stale(entry)
        frozen.tick(timedelta(seconds=60))
        assert cache.get(("python", "")) is None


class TestDebouncing:
    """Location suggestions."""

    def test_only_last_call_runs(self):
        calls = []
        done = threading.Event()

        def record(text):
            calls.append(text)
            done.set()

        debounced = Debouncer(0.05, record)
        for text in ("A", "Au", "Aus"):
            debounced(text)

        assert done.wait(timeout=2)
        debounced.flush()
        assert calls == ["Aus"]

    def test_short_input_clears_suggestions_without_lookup(self):
        lookups = []
        suggester = LocationSuggester(lambda text: lookups.append(text) or ["Austin, TX"], delay=0.01)
        suggester.suggestions = ["stale"]

        suggester.update("A")

        assert suggester.suggestions == []
        assert lookups == []

    def test_lookup_after_pause(self):
        suggester = LocationSuggester(lambda text: [f"{text} City"], delay=0.01)

        suggester.update("Aus")
        suggester.flush()

        assert suggester.suggestions == ["Aus City"]

    def test_lookup_errors_keep_suggestions(self):
        def failing(text):
            raise NetworkError("Network request failed. Please check your connection.", kind='network')

        suggester = LocationSuggester(failing, delay=0.01)
        suggester.suggestions = ["Austin, TX"]

        suggester.update("Aus")
        suggester.flush()

        assert suggester.suggestions == ["Austin, TX"]
