"""
Reminder storage backends.

Two interchangeable backends share the ``ReminderStore`` interface:

- ``SqlReminderStore``: SQLAlchemy tables on SQLite (the default)
- ``JsonReminderStore``: a single JSON document rewritten on every mutation

``build_store`` picks one from ``Settings.STORAGE_BACKEND``.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from medreminder.core.config import Settings
from medreminder.db.base import Base
from medreminder.db.session import build_engine, build_session_factory
from . import repository
from .schemas import ReminderRecord, SubscriptionRecord

logger = logging.getLogger(__name__)


class ReminderStore(ABC):
    backend_name: str = "unknown"

    @abstractmethod
    def list_reminders(self) -> List[ReminderRecord]:
        """All reminders ordered by time."""

    @abstractmethod
    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        ...

    @abstractmethod
    def add_reminder(self, reminder: ReminderRecord) -> ReminderRecord:
        ...

    @abstractmethod
    def add_reminders(self, reminders: List[ReminderRecord]) -> List[ReminderRecord]:
        ...

    @abstractmethod
    def delete_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        """Remove a reminder, returning it, or None when the id is unknown."""

    @abstractmethod
    def mark_fired(self, reminder_id: str) -> bool:
        ...

    @abstractmethod
    def add_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        ...

    @abstractmethod
    def list_subscriptions(self) -> List[SubscriptionRecord]:
        ...

    @abstractmethod
    def delete_subscription(self, subscription_id: str) -> bool:
        ...

    def list_pending(self) -> List[ReminderRecord]:
        return [r for r in self.list_reminders() if not r.fired]

    def close(self) -> None:
        pass


class SqlReminderStore(ReminderStore):
    backend_name = "sqlite"

    def __init__(self, session_factory: sessionmaker, engine=None):
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_uri(cls, database_uri: str) -> "SqlReminderStore":
        if database_uri.startswith("sqlite:///"):
            db_file = database_uri[len("sqlite:///"):]
            if db_file and db_file != ":memory:":
                Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        engine = build_engine(database_uri)
        Base.metadata.create_all(bind=engine)
        logger.info(f"🗄️ [Store] SQLite store ready at {database_uri}")
        return cls(build_session_factory(engine), engine=engine)

    def list_reminders(self) -> List[ReminderRecord]:
        with self._session_factory() as db:
            return [ReminderRecord.model_validate(r) for r in repository.list_reminders(db)]

    def list_pending(self) -> List[ReminderRecord]:
        with self._session_factory() as db:
            return [ReminderRecord.model_validate(r) for r in repository.list_reminders(db, fired=False)]

    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        with self._session_factory() as db:
            r = repository.get_reminder(db, reminder_id)
            return ReminderRecord.model_validate(r) if r else None

    def add_reminder(self, reminder: ReminderRecord) -> ReminderRecord:
        with self._session_factory() as db:
            return ReminderRecord.model_validate(repository.create_reminder(db, reminder))

    def add_reminders(self, reminders: List[ReminderRecord]) -> List[ReminderRecord]:
        if not reminders:
            return []
        with self._session_factory() as db:
            return [ReminderRecord.model_validate(r) for r in repository.create_reminders(db, reminders)]

    def delete_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        with self._session_factory() as db:
            r = repository.delete_reminder(db, reminder_id)
            return ReminderRecord.model_validate(r) if r else None

    def mark_fired(self, reminder_id: str) -> bool:
        with self._session_factory() as db:
            return repository.mark_fired(db, reminder_id)

    def add_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        with self._session_factory() as db:
            return SubscriptionRecord.model_validate(repository.create_subscription(db, subscription))

    def list_subscriptions(self) -> List[SubscriptionRecord]:
        with self._session_factory() as db:
            return [SubscriptionRecord.model_validate(s) for s in repository.list_subscriptions(db)]

    def delete_subscription(self, subscription_id: str) -> bool:
        with self._session_factory() as db:
            return repository.delete_subscription(db, subscription_id)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()


class JsonReminderStore(ReminderStore):
    """Reminders and subscriptions kept in one JSON file.

    The whole document is held in memory and rewritten atomically after each
    mutation. A file that cannot be parsed is replaced by an empty database.
    """

    backend_name = "json"

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._reminders: List[ReminderRecord] = []
        self._subscriptions: List[SubscriptionRecord] = []
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self._save()
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise TypeError(f"expected an object, got {type(raw).__name__}")
            reminders = raw.get("reminders", [])
            subscriptions = raw.get("subscriptions", [])
            if not isinstance(reminders, list) or not isinstance(subscriptions, list):
                raise TypeError("reminders and subscriptions must be arrays")
            self._reminders = [ReminderRecord.model_validate(r) for r in reminders]
            self._subscriptions = [SubscriptionRecord.model_validate(s) for s in subscriptions]
        except (json.JSONDecodeError, ValidationError, TypeError, UnicodeDecodeError) as e:
            logger.error(f"❌ [Store] Failed to parse {self.path}, starting fresh: {e}")
            self._reminders = []
            self._subscriptions = []
            self._save()
        else:
            logger.info(f"🗄️ [Store] Loaded {len(self._reminders)} reminders from {self.path}")

    def _document(self) -> Dict[str, Any]:
        return {
            "reminders": [r.model_dump(mode="json") for r in self._reminders],
            "subscriptions": [s.model_dump(mode="json") for s in self._subscriptions],
        }

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".db-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f_out:
                json.dump(self._document(), f_out, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def list_reminders(self) -> List[ReminderRecord]:
        with self._lock:
            return sorted(self._reminders, key=lambda r: (r.time, r.created_at))

    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        with self._lock:
            return next((r for r in self._reminders if r.id == reminder_id), None)

    def add_reminder(self, reminder: ReminderRecord) -> ReminderRecord:
        with self._lock:
            self._reminders.append(reminder)
            self._save()
        return reminder

    def add_reminders(self, reminders: List[ReminderRecord]) -> List[ReminderRecord]:
        if not reminders:
            return []
        with self._lock:
            self._reminders.extend(reminders)
            self._save()
        return list(reminders)

    def delete_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        with self._lock:
            for idx, r in enumerate(self._reminders):
                if r.id == reminder_id:
                    removed = self._reminders.pop(idx)
                    self._save()
                    return removed
        return None

    def mark_fired(self, reminder_id: str) -> bool:
        with self._lock:
            for idx, r in enumerate(self._reminders):
                if r.id == reminder_id:
                    self._reminders[idx] = r.model_copy(update={"fired": True})
                    self._save()
                    return True
        return False

    def add_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        with self._lock:
            self._subscriptions.append(subscription)
            self._save()
        return subscription

    def list_subscriptions(self) -> List[SubscriptionRecord]:
        with self._lock:
            return list(self._subscriptions)

    def delete_subscription(self, subscription_id: str) -> bool:
        with self._lock:
            before = len(self._subscriptions)
            self._subscriptions = [s for s in self._subscriptions if s.id != subscription_id]
            if len(self._subscriptions) == before:
                return False
            self._save()
            return True


def build_store(settings: Settings) -> ReminderStore:
    if settings.STORAGE_BACKEND == "json":
        return JsonReminderStore(settings.JSON_DB_PATH)
    return SqlReminderStore.from_uri(settings.SQLALCHEMY_DATABASE_URI)
