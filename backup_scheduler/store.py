import threading
from typing import List, Optional
from sqlalchemy import Column, JSON
from sqlmodel import Field, Session, SQLModel

from .database import create_db_and_tables
from .models import Connection, Schedule, HistoryRecord
from .logger import get_logger

logger = get_logger(__name__)

COLLECTIONS = {
    "connections": Connection,
    "schedules": Schedule,
    "history": HistoryRecord,
}


class StoreEntry(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: list = Field(default_factory=list, sa_column=Column(JSON))


class ConfigStore:
    """
    Key-value store for the ``connections``, ``schedules`` and ``history``
    collections. Every read returns the whole collection and every write
    replaces it; writers are serialized by an internal lock.
    """

    def __init__(self, engine):
        self.engine = engine
        self._lock = threading.RLock()
        create_db_and_tables(engine)

    @staticmethod
    def _model_for(key: str):
        try:
            return COLLECTIONS[key]
        except KeyError:
            raise KeyError(f"Unknown store collection: {key}") from None

    def get(self, key: str) -> list:
        model = self._model_for(key)
        with Session(self.engine) as session:
            entry = session.get(StoreEntry, key)
            raw = list(entry.value) if entry and entry.value else []
        return [model.model_validate(item) for item in raw]

    def set(self, key: str, items) -> None:
        model = self._model_for(key)
        payload = [model.model_validate(item).model_dump(mode="json") for item in items]
        with self._lock:
            with Session(self.engine) as session:
                entry = session.get(StoreEntry, key)
                if entry is None:
                    entry = StoreEntry(key=key, value=payload)
                else:
                    entry.value = payload
                session.add(entry)
                session.commit()
        logger.debug(f"Stored {len(payload)} item(s) in collection '{key}'.")

    def find(self, key: str, item_id: str):
        return next((item for item in self.get(key) if item.id == item_id), None)

    def upsert(self, key: str, item) -> None:
        with self._lock:
            items = self.get(key)
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item
                    break
            else:
                items.append(item)
            self.set(key, items)

    def remove(self, key: str, item_id: str) -> bool:
        with self._lock:
            items = self.get(key)
            remaining = [item for item in items if item.id != item_id]
            if len(remaining) == len(items):
                return False
            self.set(key, remaining)
            return True

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self.find("connections", connection_id)

    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        return self.find("schedules", schedule_id)

    def append_history(self, record: HistoryRecord) -> None:
        # Newest record first.
        with self._lock:
            self.set("history", [record, *self.get("history")])

    def clear_history(self) -> None:
        self.set("history", [])

    def list_history(self, schedule_id: Optional[str] = None) -> List[HistoryRecord]:
        history = self.get("history")
        if schedule_id:
            history = [record for record in history if record.schedule_id == schedule_id]
        return history
