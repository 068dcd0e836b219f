"""Tests for the state manager and change detection across processes."""
from pathlib import Path

from jobboard.config import Settings
from jobboard.state import LocalStateManager
from jobboard.storage import SqlKeyValueStore


def test_managers_share_one_backend(storage, job_factory):
    # Arrange
    first = LocalStateManager(storage)
    second = LocalStateManager(storage)
    changes = []
    second.on_external_change(changes.append)

    # Act
    first.saved.toggle("job-1", job_factory("job-1"))
    first.compare.add(job_factory("job-2"))
    changed = second.sync()

    # Assert
    assert set(changed) == {"savedJobs", "savedJobsObjects", "compareJobs"}
    assert changes == [changed]
    assert second.saved.is_saved("job-1")
    assert second.compare.is_in_compare("job-2")


def test_own_writes_are_not_external(manager, job_factory):
    changes = []
    manager.on_external_change(changes.append)

    manager.saved.toggle("job-1", job_factory("job-1"))
    manager.recent.record_view(job_factory("job-1"))
    manager.searches.add_search("python")

    assert manager.sync() == []
    assert changes == []


def test_unsubscribe(storage, job_factory):
    first = LocalStateManager(storage)
    second = LocalStateManager(storage)
    changes = []
    unsubscribe = second.on_external_change(changes.append)

    unsubscribe()
    first.recent.record_view(job_factory("job-1"))

    assert second.sync() == ["recentlyViewedJobs"]
    assert changes == []


def test_last_writer_wins(storage, job_factory):
    first = LocalStateManager(storage)
    second = LocalStateManager(storage)

    first.compare.add(job_factory("A"))
    second.compare.add(job_factory("B"))
    first.sync()

    assert [job.id for job in first.compare.items()] == ["B"]


def test_settings_are_applied(storage, job_factory):
    manager = LocalStateManager(storage, Settings(recently_viewed_max=2, milestones=(2,)))

    for job_id in ("A", "B", "C"):
        manager.recent.record_view(job_factory(job_id))

    assert len(manager.recent) == 2
    manager.saved.toggle("A", job_factory("A"))
    assert manager.saved.toggle("B", job_factory("B")).milestone == 2


def test_sql_backed_managers_sync(tmp_path: Path, job_factory):
    """Two managers on one SQLite file behave like two browser tabs.

    Args:
        tmp_path: pytest fixture providing temporary directory
        job_factory: Listing builder fixture
    """
    url = f"sqlite:///{tmp_path / 'state.db'}"
    first = LocalStateManager.from_url(url)
    second = LocalStateManager(SqlKeyValueStore(url))

    first.searches.save_search("Daily", "python")
    first.saved.toggle("job-1", job_factory("job-1"))

    assert set(second.sync()) == {"savedJobs", "savedJobsObjects", "savedSearches"}
    assert second.searches.find_search("Daily").query == "python"
    assert second.saved.ids() == ["job-1"]
    assert second.sync() == []


def test_in_memory_manager_starts_empty():
    manager = LocalStateManager.in_memory()
    assert manager.saved.count == 0
    assert len(manager.recent) == 0
    assert manager.compare.count == 0
    assert manager.searches.history() == []
