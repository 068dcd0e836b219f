"""Shared fixtures for the jobboard tests."""
from typing import List

import pytest

from jobboard.models import JobRecord
from jobboard.state import LocalStateManager
from jobboard.storage import MemoryKeyValueStore


def make_job(job_id: str, **fields) -> JobRecord:
    """Build a JobRecord with sensible defaults for the display fields."""
    defaults = {
        'title': f"Job {job_id}",
        'company': "TechCorp",
        'location': "Remote",
        'job_type': "Full-time",
        'source': "remotive",
    }
    defaults.update(fields)
    return JobRecord(id=job_id, **defaults)


@pytest.fixture
def storage() -> MemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def manager(storage) -> LocalStateManager:
    """State manager over the shared in-memory store.

    Args:
        storage: In-memory store fixture
    """
    return LocalStateManager(storage)


@pytest.fixture
def sample_jobs() -> List[JobRecord]:
    """A small, varied set of listings."""
    return [
        make_job("job_1", title="Senior Python Engineer", location="Austin, TX",
                 salary="$120,000 - $150,000"),
        make_job("job_2", title="Junior Frontend Developer", location="Remote",
                 salary="$60,000", job_type="Contract"),
        make_job("job_3", title="Hybrid Data Analyst", location="New York, NY",
                 salary="$90k", job_type="Part-time"),
        make_job("job_4", title="Support Specialist", location="Austin Metro Area",
                 description="Hybrid schedule, mid-level role"),
        make_job("job_5", title="DevOps Engineer", location="Denver, CO", salary=None),
    ]


@pytest.fixture
def job_factory():
    """The make_job helper, for tests building their own listings."""
    return make_job
