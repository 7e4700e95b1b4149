from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, update, delete

from .models import Reminder, PushSubscription
from .schemas import ReminderRecord, SubscriptionRecord
from medreminder.utils.timezone import to_utc_naive


def create_reminder(db: Session, data: ReminderRecord) -> Reminder:
    reminder = Reminder(
        id=data.id,
        name=data.name,
        time=to_utc_naive(data.time),
        type=data.type,
        tone=data.tone,
        file_path=data.file_path,
        fired=data.fired,
        created_at=to_utc_naive(data.created_at),
    )
    db.add(reminder)
    db.commit()
    db.refresh(reminder)
    return reminder


def create_reminders(db: Session, items: List[ReminderRecord]) -> List[Reminder]:
    rows = [
        Reminder(
            id=i.id,
            name=i.name,
            time=to_utc_naive(i.time),
            type=i.type,
            tone=i.tone,
            file_path=i.file_path,
            fired=i.fired,
            created_at=to_utc_naive(i.created_at),
        )
        for i in items
    ]
    db.add_all(rows)
    db.commit()
    return rows


def get_reminder(db: Session, reminder_id: str) -> Optional[Reminder]:
    return db.get(Reminder, reminder_id)


def list_reminders(db: Session, fired: Optional[bool] = None) -> List[Reminder]:
    stmt = select(Reminder).order_by(Reminder.time.asc(), Reminder.created_at.asc())
    if fired is not None:
        stmt = stmt.where(Reminder.fired == fired)
    return list(db.execute(stmt).scalars())


def delete_reminder(db: Session, reminder_id: str) -> Optional[Reminder]:
    r = db.get(Reminder, reminder_id)
    if not r:
        return None
    db.delete(r)
    db.commit()
    return r


def mark_fired(db: Session, reminder_id: str) -> bool:
    result = db.execute(
        update(Reminder)
        .where(Reminder.id == reminder_id)
        .values(fired=True)
    )
    db.commit()
    return result.rowcount > 0


def create_subscription(db: Session, data: SubscriptionRecord) -> PushSubscription:
    sub = PushSubscription(
        id=data.id,
        endpoint=data.endpoint,
        keys=dict(data.keys),
        created_at=to_utc_naive(data.created_at),
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


def list_subscriptions(db: Session) -> List[PushSubscription]:
    stmt = select(PushSubscription).order_by(PushSubscription.created_at.asc())
    return list(db.execute(stmt).scalars())


def delete_subscription(db: Session, subscription_id: str) -> bool:
    result = db.execute(delete(PushSubscription).where(PushSubscription.id == subscription_id))
    db.commit()
    return result.rowcount > 0
