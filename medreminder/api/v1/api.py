from fastapi import APIRouter

from medreminder.api.v1.endpoints import reports
from medreminder.reminders.api import router as reminders_router

api_router = APIRouter()

api_router.include_router(reminders_router, tags=["reminders"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
