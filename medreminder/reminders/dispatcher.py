import asyncio
import logging
from typing import List, Optional

from .metrics import (
    reminders_dispatch_failed_total,
    reminders_dispatch_success_total,
    reminders_fired_total,
    subscriptions_pruned_total,
)
from .push import PushResult, WebPushSender, build_notification_payload
from .schemas import ReminderRecord
from .store import ReminderStore
from medreminder.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class ReminderDispatcher:
    """Runs when a reminder timer elapses: push to subscribers, then mark fired."""

    def __init__(self, store: ReminderStore, sender: Optional[WebPushSender] = None):
        self.store = store
        self.sender = sender

    @property
    def push_enabled(self) -> bool:
        return self.sender is not None and self.sender.is_configured()

    async def fire(self, reminder: ReminderRecord) -> List[PushResult]:
        logger.info(f"🔔 [Dispatcher] Triggering reminder {reminder.id} {reminder.name}")
        reminders_fired_total.inc()

        results: List[PushResult] = []
        if self.push_enabled:
            results = await self.push_to_all(reminder)

        if not self.store.mark_fired(reminder.id):
            logger.warning(f"⚠️ [Dispatcher] Reminder {reminder.id} fired but is no longer stored")
        logger.info(
            f"✅ [Dispatcher] Reminder fired: {reminder.name} ({reminder.type}) at {utc_now().isoformat()}"
        )
        return results

    async def push_to_all(self, reminder: ReminderRecord) -> List[PushResult]:
        payload = build_notification_payload(reminder)
        results: List[PushResult] = []
        for sub in self.store.list_subscriptions():
            # pywebpush is blocking (requests), keep it off the event loop
            result = await asyncio.to_thread(self.sender.send, sub, payload)
            results.append(result)
            if result.success:
                reminders_dispatch_success_total.inc()
                continue
            reminders_dispatch_failed_total.inc()
            logger.warning(f"⚠️ [Push] Push failed for {sub.id}: {result.error}")
            if result.subscription_gone:
                self.store.delete_subscription(sub.id)
                subscriptions_pruned_total.inc()
                logger.info(f"🧹 [Push] Removed expired subscription {sub.id}")
        return results
