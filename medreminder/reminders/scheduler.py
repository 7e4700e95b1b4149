"""
In-process reminder timers.

One asyncio task per reminder sleeps until the reminder time and then hands
the reminder to the fire callback. Nothing here is durable: on restart the
application re-arms pending reminders from storage.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set

from .metrics import reminders_scheduled
from .schemas import ReminderRecord
from medreminder.utils.timezone import to_utc_aware, utc_now

logger = logging.getLogger(__name__)

FireCallback = Callable[[ReminderRecord], Awaitable[None]]


class ReminderScheduler:
    """Keeps a map of reminder id -> pending timer task"""

    def __init__(self, on_fire: FireCallback, clock: Callable[[], datetime] = utc_now):
        self._on_fire = on_fire
        self._clock = clock
        self._tasks: Dict[str, asyncio.Task] = {}
        # timers past their sleep whose callback is still running
        self._firing: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, reminder_id: str) -> bool:
        return reminder_id in self._tasks

    def delay_for(self, reminder: ReminderRecord, now: Optional[datetime] = None) -> float:
        now = to_utc_aware(now) if now else self._clock()
        return (to_utc_aware(reminder.time) - now).total_seconds()

    def schedule(self, reminder: ReminderRecord) -> bool:
        """Arm a timer for the reminder; past or already fired reminders are skipped.

        Must be called from the running event loop. An existing timer for the
        same id is replaced.
        """
        if reminder.fired:
            return False
        delay = self.delay_for(reminder)
        if delay <= 0:
            logger.debug(f"⏭️ [Scheduler] Skipping past reminder {reminder.id} ({reminder.time.isoformat()})")
            return False

        self.cancel(reminder.id)
        task = asyncio.get_running_loop().create_task(
            self._timer(reminder, delay), name=f"reminder-{reminder.id}"
        )
        self._tasks[reminder.id] = task
        reminders_scheduled.set(len(self._tasks))
        logger.info(f"⏰ [Scheduler] Reminder {reminder.id} ({reminder.name}) armed in {delay:.0f}s")
        return True

    def schedule_all(self, reminders: Iterable[ReminderRecord]) -> int:
        armed = 0
        for reminder in reminders:
            if self.schedule(reminder):
                armed += 1
        return armed

    def cancel(self, reminder_id: str) -> bool:
        task = self._tasks.pop(reminder_id, None)
        reminders_scheduled.set(len(self._tasks))
        if task is None:
            return False
        if not task.done():
            task.cancel()
        logger.info(f"🛑 [Scheduler] Timer cancelled for reminder {reminder_id}")
        return True

    async def shutdown(self) -> None:
        """Cancel pending timers, then wait for fire callbacks already running."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        reminders_scheduled.set(0)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"🛑 [Scheduler] Cancelled {len(tasks)} pending timers on shutdown")

        firing = list(self._firing)
        if firing:
            logger.info(f"⏳ [Scheduler] Waiting for {len(firing)} reminder(s) being fired")
            await asyncio.gather(*firing, return_exceptions=True)

    async def _timer(self, reminder: ReminderRecord, delay: float) -> None:
        await asyncio.sleep(delay)

        task = asyncio.current_task()
        # Drop our own entry only if it has not been replaced in the meantime
        if self._tasks.get(reminder.id) is task:
            self._tasks.pop(reminder.id, None)
            reminders_scheduled.set(len(self._tasks))

        self._firing.add(task)
        try:
            await self._on_fire(reminder)
        except Exception as e:
            logger.error(f"❌ [Scheduler] Fire callback failed for reminder {reminder.id}: {e!r}")
        finally:
            self._firing.discard(task)
