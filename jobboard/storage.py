"""Persistent key-value storage shared by the client stores."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, Optional
import json
import logging

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from .errors import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


class KeyValueStore(ABC):
    """Synchronous string-keyed storage.

    Every write bumps a per-key revision so that readers sharing the same
    backend can tell when somebody else changed a key.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the serialized value for key, or None when absent."""

    @abstractmethod
    def set_many(self, values: Dict[str, str]) -> None:
        """Write several keys at once; either all writes land or none do."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def revision(self, key: str) -> int:
        """Return the write counter for key (0 when never written)."""

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def revisions(self, keys: Iterable[str]) -> Dict[str, int]:
        return {key: self.revision(key) for key in keys}


class MemoryKeyValueStore(KeyValueStore):
    """In-process store; several managers may share one instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._revisions: Dict[str, int] = {key: 1 for key in self._values}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set_many(self, values: Dict[str, str]) -> None:
        for key, value in values.items():
            if not isinstance(value, str):
                raise TypeError(f"Value for {key} must be a string")
        for key, value in values.items():
            self._values[key] = value
            self._revisions[key] = self._revisions.get(key, 0) + 1

    def delete(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self._revisions[key] = self._revisions.get(key, 0) + 1

    def revision(self, key: str) -> int:
        return self._revisions.get(key, 0)


class KeyValueModel(Base):
    """SQLAlchemy model for a stored key."""
    __tablename__ = 'kv_entries'

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=True)
    revision = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SqlKeyValueStore(KeyValueStore):
    """Key-value store backed by a SQL database.

    Processes pointing at the same database URL see each other's writes,
    the way browser tabs of one origin share local storage.
    """

    def __init__(self, db_url: str = "sqlite:///jobboard.db", echo: bool = False):
        """Initialize database connection.

        Args:
            db_url: Database connection URL
            echo: Log emitted SQL
        """
        self.engine = create_engine(db_url, echo=echo)
        self.Session = sessionmaker(bind=self.engine)
        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[str]:
        try:
            with self.Session() as session:
                entry = session.get(KeyValueModel, key)
                if entry is None:
                    return None
                return entry.value
        except SQLAlchemyError as e:
            logger.error(f"Error reading key {key}: {str(e)}")
            raise StorageError(f"Failed to read {key}") from e

    def set_many(self, values: Dict[str, str]) -> None:
        """Write all values in a single transaction.

        Args:
            values: Mapping of key to serialized value

        Raises:
            StorageError: If the transaction fails; nothing is written then
        """
        if not values:
            return
        try:
            with self.Session() as session:
                existing = {
                    entry.key: entry for entry in
                    session.query(KeyValueModel).filter(KeyValueModel.key.in_(list(values))).all()
                }
                for key, value in values.items():
                    entry = existing.get(key)
                    if entry is None:
                        session.add(KeyValueModel(key=key, value=value, revision=1))
                    else:
                        entry.value = value
                        entry.revision = (entry.revision or 0) + 1
                        entry.updated_at = datetime.utcnow()
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error writing keys {sorted(values)}: {str(e)}")
            raise StorageError(f"Failed to write {', '.join(sorted(values))}") from e

    def delete(self, key: str) -> None:
        # Tombstone rather than row removal so the revision keeps counting
        try:
            with self.Session() as session:
                entry = session.get(KeyValueModel, key)
                if entry is not None and entry.value is not None:
                    entry.value = None
                    entry.revision = (entry.revision or 0) + 1
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting key {key}: {str(e)}")
            raise StorageError(f"Failed to delete {key}") from e

    def revision(self, key: str) -> int:
        return self.revisions([key])[key]

    def revisions(self, keys: Iterable[str]) -> Dict[str, int]:
        keys = list(keys)
        try:
            with self.Session() as session:
                rows = session.query(KeyValueModel.key, KeyValueModel.revision).filter(
                    KeyValueModel.key.in_(keys)
                ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error reading revisions: {str(e)}")
            raise StorageError("Failed to read revisions") from e
        found = {row[0]: row[1] or 0 for row in rows}
        return {key: found.get(key, 0) for key in keys}


def read_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Decode the JSON value stored under key.

    A missing key or a value that fails to parse yields default; a corrupt
    value never propagates as an exception.
    """
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding corrupt value for {key}: {e}")
        return default


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
