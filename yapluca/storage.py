# yapluca/storage.py
"""
Device-local key/value storage. String keys, JSON-serialized values, one row
per key in the local_storage table.
"""
import json
import logging
from typing import Any, Iterable, Optional
from sqlalchemy.exc import SQLAlchemyError
from yapluca.db import SessionLocal
from yapluca import models

logger = logging.getLogger(__name__)

SESSION_KEY = "userSession"
CONSENTS_KEY = "user_consents"
ACCESS_LOGS_KEY = "data_access_logs"
PREFERENCES_KEY = "user_preferences"
FAVORITES_KEY = "favorite_stations"
RENTAL_HISTORY_KEY = "rental_history"


class StorageError(Exception):
    """Raised when the local store cannot be read or written."""


class LocalStorage:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def get_item(self, key: str) -> Optional[Any]:
        db = self.session_factory()
        try:
            item = db.get(models.StoredItem, key)
            if item is None:
                return None
            return json.loads(item.value)
        except (SQLAlchemyError, ValueError) as e:
            raise StorageError(f"could not read {key!r}: {e}") from e
        finally:
            db.close()

    def set_item(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except TypeError as e:
            raise StorageError(f"value for {key!r} is not serializable: {e}") from e
        db = self.session_factory()
        try:
            item = db.get(models.StoredItem, key)
            if item is None:
                db.add(models.StoredItem(key=key, value=payload))
            else:
                item.value = payload
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"could not write {key!r}: {e}") from e
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        db = self.session_factory()
        try:
            db.query(models.StoredItem).filter(models.StoredItem.key.in_(keys)).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"could not remove {keys!r}: {e}") from e
        finally:
            db.close()
        logger.debug("removed local keys %s", keys)
