"""Client local state manager: the stores behind one persistence adapter."""
from typing import Callable, List, Optional
import logging

from .config import Settings
from .domain import ComparisonStore, RecentlyViewedStore, SavedJobsStore, SearchStore
from .storage import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore

logger = logging.getLogger(__name__)

ExternalChangeCallback = Callable[[List[str]], None]


class LocalStateManager:
    """Owns the saved, recently viewed, comparison and search stores.

    Every store reads its keys once at construction. Writes made by another
    process sharing the same storage are picked up by ``sync()``, which
    reloads the affected stores and tells the ``on_external_change``
    subscribers which keys changed. Concurrent writers are not merged; the
    last full-store write wins.
    """

    def __init__(self, storage: KeyValueStore, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or Settings()
        self.saved = SavedJobsStore(storage, milestones=self.settings.milestones)
        self.recent = RecentlyViewedStore(storage, max_items=self.settings.recently_viewed_max)
        self.compare = ComparisonStore(storage)
        self.searches = SearchStore(storage, max_history=self.settings.history_max)
        self._listeners: List[ExternalChangeCallback] = []

    @classmethod
    def in_memory(cls, settings: Optional[Settings] = None) -> 'LocalStateManager':
        return cls(MemoryKeyValueStore(), settings)

    @classmethod
    def from_url(cls, db_url: str, settings: Optional[Settings] = None, echo: bool = False) -> 'LocalStateManager':
        return cls(SqlKeyValueStore(db_url, echo=echo), settings)

    @property
    def stores(self):
        return (self.saved, self.recent, self.compare, self.searches)

    def on_external_change(self, callback: ExternalChangeCallback) -> Callable[[], None]:
        """Register a listener for changes made outside this manager.

        Args:
            callback: Called with the list of changed storage keys

        Returns:
            Callable that unregisters the listener
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sync(self) -> List[str]:
        """Reload stores whose keys were written elsewhere.

        Call when regaining focus or on a storage-change notification.

        Returns:
            List[str]: Keys that changed, empty when nothing did
        """
        changed: List[str] = []
        for store in self.stores:
            keys = store.changed_keys()
            if keys:
                store.reload()
                changed.extend(keys)
        if changed:
            logger.info(f"Picked up external changes to {', '.join(changed)}")
            for listener in list(self._listeners):
                listener(changed)
        return changed
