import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from medreminder.api.deps import get_app_settings, get_reminder_service, verify_api_key_dependency
from medreminder.core.config import Settings
from medreminder.services.file_storage import store_upload
from medreminder.utils.timezone import get_zoneinfo, parse_iso_datetime
from .prescription_parser import parse_prescription
from .schemas import (
    ParsedPrescription,
    ParsePrescriptionRequest,
    ParsePrescriptionResponse,
    PrescriptionToRemindersRequest,
    ReminderCreate,
    ReminderRead,
    ReminderRemoved,
    RemindersCreated,
    SubscriptionCreate,
    SubscriptionCreated,
    VapidPublicKey,
)
from .service import ReminderService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key_dependency)])

TONE_FILE_FIELD = "toneFile"


async def _read_reminder_body(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Accept either a JSON body or a (multipart) form with an optional tone file."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        upload = form.get(TONE_FILE_FIELD)
        data = {k: v for k, v in form.items() if k != TONE_FILE_FIELD and isinstance(v, str)}
        return data, upload if isinstance(upload, UploadFile) else None

    try:
        data = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON or form data")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Request body must be an object")
    return data, None


@router.get("/reminders", response_model=List[ReminderRead])
def list_reminders_endpoint(service: ReminderService = Depends(get_reminder_service)):
    return [ReminderRead.from_record(r) for r in service.list_reminders()]


@router.post("/reminders", response_model=ReminderRead, status_code=status.HTTP_201_CREATED)
async def create_reminder_endpoint(
    request: Request,
    service: ReminderService = Depends(get_reminder_service),
    settings: Settings = Depends(get_app_settings),
):
    """Create a reminder from JSON or multipart form data (``toneFile`` optional).

    ``medName`` is accepted as an alias of ``name``.
    """
    data, upload = await _read_reminder_body(request)

    name = data.get("name") or data.get("medName")
    when = data.get("time")
    if not name or not when:
        raise HTTPException(status_code=400, detail="name and time required")
    try:
        when = parse_iso_datetime(when)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="time must be an ISO-8601 timestamp")
    try:
        payload = ReminderCreate(name=name, time=when, type=data.get("type") or None, tone=data.get("tone") or None)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid reminder: {e.errors()[0].get('msg')}")

    file_path = None
    if upload is not None and upload.filename:
        content = await upload.read()
        file_path = store_upload(content, upload.filename, settings.UPLOADS_LOCAL_DIR)

    record = service.create_reminder(payload, file_path=file_path)
    return ReminderRead.from_record(record)


@router.get("/reminders/{reminder_id}", response_model=ReminderRead)
def get_reminder_endpoint(reminder_id: str, service: ReminderService = Depends(get_reminder_service)):
    r = service.get_reminder(reminder_id)
    if not r:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return ReminderRead.from_record(r)


@router.delete("/reminders/{reminder_id}", response_model=ReminderRemoved)
async def delete_reminder_endpoint(reminder_id: str, service: ReminderService = Depends(get_reminder_service)):
    """Delete a reminder and cancel its pending timer."""
    removed = service.delete_reminder(reminder_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return ReminderRemoved(removed=ReminderRead.from_record(removed))


@router.post("/parse-prescription", response_model=ParsePrescriptionResponse)
def parse_prescription_endpoint(payload: ParsePrescriptionRequest):
    if not payload.text:
        raise HTTPException(status_code=400, detail="text required")
    return ParsePrescriptionResponse(parsed=parse_prescription(payload.text))


@router.post("/prescription-to-reminders", response_model=RemindersCreated)
async def prescription_to_reminders_endpoint(
    payload: PrescriptionToRemindersRequest,
    service: ReminderService = Depends(get_reminder_service),
    settings: Settings = Depends(get_app_settings),
):
    """Expand the output of /parse-prescription into concrete reminders."""
    if not isinstance(payload.parsed, list):
        raise HTTPException(status_code=400, detail="parsed array required")
    try:
        items = [ParsedPrescription.model_validate(item) for item in payload.parsed]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid parsed item: {e.errors()[0].get('msg')}")

    start = None
    if payload.startDate:
        try:
            start = parse_iso_datetime(payload.startDate)
        except ValueError:
            raise HTTPException(status_code=400, detail="startDate must be an ISO-8601 date or timestamp")

    try:
        created = service.create_from_prescriptions(
            items,
            start=start,
            days=settings.PRESCRIPTION_SCHEDULE_DAYS,
            tz=get_zoneinfo(settings.DEFAULT_TIMEZONE),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RemindersCreated(created=[ReminderRead.from_record(r) for r in created])


@router.post("/subscribe", response_model=SubscriptionCreated)
def subscribe_endpoint(payload: SubscriptionCreate, service: ReminderService = Depends(get_reminder_service)):
    if not payload.endpoint:
        raise HTTPException(status_code=400, detail="Invalid subscription")
    sub = service.add_subscription(payload.endpoint, payload.keys)
    return SubscriptionCreated(id=sub.id)


@router.get("/vapidPublicKey", response_model=VapidPublicKey)
def vapid_public_key_endpoint(settings: Settings = Depends(get_app_settings)):
    return VapidPublicKey(publicKey=settings.VAPID_PUBLIC_KEY)
