"""Search history and named saved searches."""
from dataclasses import dataclass
from typing import List, Optional
import logging

from ..models import DEFAULT_FILTERS, JobFiltersState, SavedSearch, SearchHistoryEntry
from ..storage import KeyValueStore
from .base import PersistentStore

logger = logging.getLogger(__name__)

HISTORY_KEY = 'searchHistory'
SAVED_SEARCHES_KEY = 'savedSearches'
DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class AppliedSearch:
    """What a saved search puts back into the search form."""
    query: str
    location: str
    filters: JobFiltersState


@dataclass(frozen=True)
class SaveSearchResult:
    search: SavedSearch
    duplicate_name: bool = False


def apply_search(saved: SavedSearch) -> AppliedSearch:
    return AppliedSearch(query=saved.query, location=saved.location, filters=saved.filters)


class SearchStore(PersistentStore):
    """Past queries plus named, reusable search configurations.

    History is kept oldest-first in storage, bounded at ``max_history``.
    Repeating a query moves it to the newest position instead of adding a
    second entry. Saved searches may share a name; both are kept.
    """

    KEYS = (HISTORY_KEY, SAVED_SEARCHES_KEY)

    def __init__(self, storage: KeyValueStore, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._history: List[SearchHistoryEntry] = []
        self._saved: List[SavedSearch] = []
        super().__init__(storage)

    def _load(self) -> None:
        history = []
        for data in self._read(HISTORY_KEY, list, []):
            if not isinstance(data, dict):
                continue
            try:
                history.append(SearchHistoryEntry.from_dict(data))
            except ValueError as e:
                logger.warning(f"Skipping malformed search history entry: {e}")
        self._history = history[-self.max_history:]

        saved = []
        for data in self._read(SAVED_SEARCHES_KEY, list, []):
            if not isinstance(data, dict):
                continue
            try:
                saved.append(SavedSearch.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed saved search: {e}")
        self._saved = saved

    def _persist_history(self) -> None:
        self._write({HISTORY_KEY: [entry.to_dict() for entry in self._history]})

    def _persist_saved(self) -> None:
        self._write({SAVED_SEARCHES_KEY: [search.to_dict() for search in self._saved]})

    # History

    def add_search(self, query: str, location: str = '') -> Optional[SearchHistoryEntry]:
        """Record a search; blank searches are not recorded."""
        query = (query or '').strip()
        location = (location or '').strip()
        if not query and not location:
            return None
        entry = SearchHistoryEntry(query=query, location=location)
        self._history = [
            old for old in self._history
            if (old.query.lower(), old.location.lower()) != (query.lower(), location.lower())
        ]
        self._history.append(entry)
        del self._history[:-self.max_history]
        self._persist_history()
        return entry

    def history(self) -> List[SearchHistoryEntry]:
        """History entries, newest first."""
        return list(reversed(self._history))

    def clear_history(self) -> None:
        self._history = []
        self._persist_history()

    # Saved searches

    def save_search(
        self,
        name: str,
        query: str = '',
        location: str = '',
        filters: JobFiltersState = DEFAULT_FILTERS,
        notify_on_new: bool = False,
    ) -> SaveSearchResult:
        search = SavedSearch(
            name=(name or '').strip(),
            query=(query or '').strip(),
            location=(location or '').strip(),
            filters=filters,
            notify_on_new=notify_on_new,
        )
        duplicate = any(existing.name == search.name for existing in self._saved)
        if duplicate:
            logger.warning(f"Saved search name {search.name!r} is already in use; keeping both")
        self._saved.append(search)
        self._persist_saved()
        return SaveSearchResult(search=search, duplicate_name=duplicate)

    def saved_searches(self) -> List[SavedSearch]:
        return list(self._saved)

    def find_search(self, name: str) -> Optional[SavedSearch]:
        """Most recently saved search with this name."""
        for search in reversed(self._saved):
            if search.name == name:
                return search
        return None

    def apply_search(self, saved: SavedSearch) -> AppliedSearch:
        return apply_search(saved)

    def delete_search(self, name: str) -> int:
        """Delete every saved search called name; returns how many were removed."""
        remaining = [search for search in self._saved if search.name != name]
        removed = len(self._saved) - len(remaining)
        if removed:
            self._saved = remaining
            self._persist_saved()
        return removed
