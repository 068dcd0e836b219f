"""Common plumbing for stores persisted in a KeyValueStore."""
from typing import Any, Dict, List, Tuple
import logging

from ..storage import KeyValueStore, read_json, dump_json

logger = logging.getLogger(__name__)


class PersistentStore:
    """Base class for a store owning a fixed set of keys.

    Subclasses declare ``KEYS``, implement ``_load`` to rebuild their
    in-memory state and call ``_write`` after every mutation.
    """

    KEYS: Tuple[str, ...] = ()

    def __init__(self, storage: KeyValueStore):
        self.storage = storage
        self._seen: Dict[str, int] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the owned keys from storage."""
        self._load()
        self._seen = self.storage.revisions(self.KEYS)

    def changed_keys(self) -> List[str]:
        """Owned keys written by someone else since our last read or write."""
        current = self.storage.revisions(self.KEYS)
        return [key for key in self.KEYS if current[key] != self._seen.get(key, 0)]

    def _load(self) -> None:
        raise NotImplementedError

    def _read(self, key: str, expected_type: type, default: Any) -> Any:
        value = read_json(self.storage, key, default)
        if not isinstance(value, expected_type):
            logger.warning(f"Ignoring {key}: expected {expected_type.__name__}, got {type(value).__name__}")
            return default
        return value

    def _write(self, values: Dict[str, Any]) -> None:
        self.storage.set_many({key: dump_json(value) for key, value in values.items()})
        self._seen.update(self.storage.revisions(values))
