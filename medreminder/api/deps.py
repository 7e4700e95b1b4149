from typing import Optional

from fastapi import Header, HTTPException, Request, status

from medreminder.core.config import Settings
from medreminder.reminders.service import ReminderService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_reminder_service(request: Request) -> ReminderService:
    return request.app.state.reminder_service


def verify_api_key(api_key: Optional[str], settings: Settings) -> bool:
    """
    Verify API key against configured valid keys
    """
    valid_keys = settings.VALID_API_KEYS
    if isinstance(valid_keys, str):
        valid_keys = [valid_keys]
    return bool(api_key) and api_key in valid_keys


def verify_api_key_dependency(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> None:
    """Require X-API-Key only when VALID_API_KEYS is configured"""
    settings = get_app_settings(request)
    if not settings.VALID_API_KEYS:
        return
    if not verify_api_key(x_api_key, settings):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
