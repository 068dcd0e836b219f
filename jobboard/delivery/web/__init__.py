"""Local HTTP surface over the client state."""

from .state_handler import StateWebHandler

__all__ = ['StateWebHandler']
