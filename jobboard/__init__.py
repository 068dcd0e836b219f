"""jobboard - client state for a job-search aggregation app."""

__version__ = "0.1.0"
