"""
Reminder and push subscription tables for the SQLite backend
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, JSON, Index
import uuid

from medreminder.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Reminder(Base):
    """A single medicine reminder; times are stored UTC-naive"""
    __tablename__ = "reminders"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    time = Column(DateTime, nullable=False, index=True)
    type = Column(String, nullable=False, default="alarm")
    tone = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    fired = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_reminders_fired_time", "fired", "time"),
    )


class PushSubscription(Base):
    """Browser Web Push subscription (endpoint + p256dh/auth keys)"""
    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True, default=_new_id)
    endpoint = Column(String, nullable=False)
    keys = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
