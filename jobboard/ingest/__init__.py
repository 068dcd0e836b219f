"""Remote services: auth, user administration and job search."""

from .client import ApiClient, AuthClient, UserAdminClient, JobSearchClient, AdminResult, UserListing
from .search import JobSearchService, SearchCache, SearchResults, Debouncer, LocationSuggester

__all__ = [
    'ApiClient', 'AuthClient', 'UserAdminClient', 'JobSearchClient', 'AdminResult', 'UserListing',
    'JobSearchService', 'SearchCache', 'SearchResults', 'Debouncer', 'LocationSuggester',
]
