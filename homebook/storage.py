import logging
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from homebook.errors import StorageError
from homebook.models import KeyValue

logger = logging.getLogger(__name__)


class SqlKeyValueStorage:
    """
    Key-value storage backed by the kv_store table.

    Every set_item commits, so a write either replaces the whole value or leaves the
    previous one in place.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_item(self, key: str) -> str | None:
        try:
            row = self._session.get(KeyValue, key)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("Failed reading key=%s", key)
            raise StorageError(f"could not read {key!r}") from exc
        return None if row is None else row.value

    def set_item(self, key: str, value: str) -> None:
        try:
            self._session.merge(KeyValue(key=key, value=value))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("Failed writing key=%s value_len=%s", key, len(value))
            raise StorageError(f"could not write {key!r}") from exc


class MemoryKeyValueStorage:
    """Dict-backed storage for embedding the store without a database."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value
