"""
Web Push delivery using VAPID credentials (pywebpush)
"""
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush

from .schemas import ReminderRecord, SubscriptionRecord

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Medicine Reminder"

# Push service answers meaning the subscription no longer exists
GONE_STATUS_CODES = {404, 410}


@dataclass
class PushResult:
    """Result of a push notification attempt"""
    success: bool
    subscription_id: str
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def subscription_gone(self) -> bool:
        return self.status_code in GONE_STATUS_CODES


def build_notification_payload(reminder: ReminderRecord) -> Dict[str, Any]:
    return {
        "title": NOTIFICATION_TITLE,
        "body": f"Time to take: {reminder.name}",
        "data": {
            "medName": reminder.name,
            "type": reminder.type,
            "tone": reminder.tone,
            "file": f"/uploads/{os.path.basename(reminder.file_path)}" if reminder.file_path else None,
        },
    }


class WebPushSender:
    """Sends JSON payloads to browser push subscriptions"""

    def __init__(self, public_key: str, private_key: str, email: str, ttl: int = 60):
        self.public_key = public_key or ""
        self.private_key = private_key or ""
        self.email = email
        self.ttl = ttl

    def is_configured(self) -> bool:
        return bool(self.public_key and self.private_key)

    def _claims(self) -> Dict[str, str]:
        sub = self.email if self.email.startswith(("mailto:", "https:")) else f"mailto:{self.email}"
        return {"sub": sub}

    def send(self, subscription: SubscriptionRecord, payload: Dict[str, Any]) -> PushResult:
        """Deliver one payload; delivery failures are reported, not raised"""
        if not self.is_configured():
            return PushResult(success=False, subscription_id=subscription.id, error="VAPID keys not configured")
        try:
            response = webpush(
                subscription_info=subscription.subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                vapid_claims=self._claims(),
                ttl=self.ttl,
            )
        except WebPushException as e:
            return PushResult(
                success=False,
                subscription_id=subscription.id,
                status_code=getattr(e.response, "status_code", None),
                error=str(e),
            )
        return PushResult(
            success=True,
            subscription_id=subscription.id,
            status_code=getattr(response, "status_code", None),
        )
