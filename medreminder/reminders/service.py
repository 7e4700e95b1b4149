"""
Reminder service - storage, timers and uploaded files kept in step
"""
import logging
import math
import uuid
from datetime import datetime, time as dt_time, timedelta, tzinfo
from typing import Iterable, List, Optional

from .metrics import reminders_created_total, reminders_deleted_total
from .scheduler import ReminderScheduler
from .schemas import ParsedPrescription, ReminderCreate, ReminderRecord, SubscriptionRecord
from .store import ReminderStore
from medreminder.services.file_storage import remove_upload
from medreminder.utils.timezone import to_utc_aware, utc_now

logger = logging.getLogger(__name__)


def parse_clock_time(value: str) -> dt_time:
    """Parse ``HH:MM`` (24h) into a time; raises ValueError when out of range."""
    try:
        hh, mm = (int(part) for part in value.split(":"))
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time of day: {value!r}")
    if not (0 <= hh < 24 and 0 <= mm < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return dt_time(hh, mm)


def occurrence_times(item: ParsedPrescription, start: datetime, days: int, tz: tzinfo) -> List[datetime]:
    """Concrete UTC times for one parsed medication over ``days`` days.

    ``every_hours`` wins over ``at_time``: ``days * ceil(24 / every_hours)``
    occurrences spaced from ``start``. Otherwise one per day at ``at_time``
    (wall clock in ``tz``) starting on the start date. Neither set yields
    nothing.
    """
    start = to_utc_aware(start)
    if item.every_hours is not None:
        if item.every_hours <= 0:
            raise ValueError(f"every_hours must be positive for {item.name!r}")
        occurrences = days * math.ceil(24 / item.every_hours)
        step = timedelta(hours=item.every_hours)
        return [start + i * step for i in range(occurrences)]

    if item.at_time:
        clock = parse_clock_time(item.at_time)
        local_start = start.astimezone(tz).date()
        times = []
        for d in range(days):
            day = local_start + timedelta(days=d)
            times.append(to_utc_aware(datetime.combine(day, clock, tzinfo=tz)))
        return times

    return []


class ReminderService:
    """Keeps the store, the timers and uploaded files consistent"""

    def __init__(
        self,
        store: ReminderStore,
        scheduler: ReminderScheduler,
        default_tone: Optional[str] = "tone1",
        default_type: str = "alarm",
    ):
        self.store = store
        self.scheduler = scheduler
        self.default_tone = default_tone
        self.default_type = default_type

    def _new_record(self, name: str, when: datetime, type_: Optional[str] = None,
                    tone: Optional[str] = None, file_path: Optional[str] = None) -> ReminderRecord:
        return ReminderRecord(
            id=str(uuid.uuid4()),
            name=name,
            time=when,
            type=type_ or self.default_type,
            tone=tone or self.default_tone,
            file_path=file_path,
            fired=False,
            created_at=utc_now(),
        )

    def list_reminders(self) -> List[ReminderRecord]:
        return self.store.list_reminders()

    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        return self.store.get_reminder(reminder_id)

    def create_reminder(self, data: ReminderCreate, file_path: Optional[str] = None) -> ReminderRecord:
        record = self._new_record(data.name, data.time, data.type, data.tone, file_path)
        self.store.add_reminder(record)
        reminders_created_total.inc()
        self.scheduler.schedule(record)
        logger.info(f"➕ [Reminders] Created reminder {record.id} ({record.name}) for {record.time.isoformat()}")
        return record

    def delete_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        removed = self.store.delete_reminder(reminder_id)
        # Cancel even when the row is already gone so no stray timer survives
        self.scheduler.cancel(reminder_id)
        if removed is None:
            return None
        remove_upload(removed.file_path)
        reminders_deleted_total.inc()
        logger.info(f"➖ [Reminders] Deleted reminder {reminder_id}")
        return removed

    def create_from_prescriptions(
        self,
        parsed: Iterable[ParsedPrescription],
        start: Optional[datetime],
        days: int,
        tz: tzinfo,
    ) -> List[ReminderRecord]:
        """Expand parsed medications into reminders, persist them, then arm timers.

        Raises ValueError before anything is stored when an item is invalid.
        """
        base = to_utc_aware(start) if start else utc_now()
        records: List[ReminderRecord] = []
        for item in parsed:
            for when in occurrence_times(item, base, days, tz):
                records.append(self._new_record(item.name, when, type_="alarm"))

        self.store.add_reminders(records)
        reminders_created_total.inc(len(records))
        armed = self.scheduler.schedule_all(records)
        logger.info(f"💊 [Reminders] Created {len(records)} reminders from prescription ({armed} armed)")
        return records

    def restore_timers(self) -> int:
        """Re-arm timers for every stored reminder that has not fired yet."""
        armed = self.scheduler.schedule_all(self.store.list_pending())
        logger.info(f"⏰ [Reminders] Restored {armed} pending timers")
        return armed

    def add_subscription(self, endpoint: str, keys: dict) -> SubscriptionRecord:
        sub = SubscriptionRecord(id=str(uuid.uuid4()), endpoint=endpoint, keys=keys or {}, created_at=utc_now())
        self.store.add_subscription(sub)
        logger.info(f"📬 [Push] Stored subscription {sub.id}")
        return sub
