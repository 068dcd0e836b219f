"""Domain module for the client-held job collections."""

from .saved_jobs import SavedJobsStore, SavedJobsSnapshot, ToggleResult
from .recently_viewed import RecentlyViewedStore
from .comparison import ComparisonStore, MAX_COMPARE
from .searches import SearchStore, AppliedSearch, SaveSearchResult, apply_search

__all__ = [
    'SavedJobsStore', 'SavedJobsSnapshot', 'ToggleResult',
    'RecentlyViewedStore',
    'ComparisonStore', 'MAX_COMPARE',
    'SearchStore', 'AppliedSearch', 'SaveSearchResult', 'apply_search',
]
