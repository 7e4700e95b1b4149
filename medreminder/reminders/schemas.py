"""
Schemas for reminders, push subscriptions and parsed prescriptions
"""
import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from medreminder.utils.timezone import to_utc_aware, utc_now


class ReminderCreate(BaseModel):
    """Schema for creating a reminder"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "medName"))
    time: datetime
    type: Optional[str] = None
    tone: Optional[str] = None

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: datetime) -> datetime:
        return to_utc_aware(v)


class ReminderRecord(BaseModel):
    """Stored reminder, shared by the JSON and SQLite backends"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    time: datetime
    type: str = "alarm"
    tone: Optional[str] = None
    file_path: Optional[str] = None
    fired: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("time", "created_at")
    @classmethod
    def normalize_times(cls, v: datetime) -> datetime:
        return to_utc_aware(v)

    @property
    def file_url(self) -> Optional[str]:
        if not self.file_path:
            return None
        return f"/uploads/{os.path.basename(self.file_path)}"


class ReminderRead(BaseModel):
    """Schema for reading a reminder"""
    id: str
    name: str
    time: datetime
    type: str
    tone: Optional[str]
    file_url: Optional[str]
    fired: bool
    created_at: datetime

    @classmethod
    def from_record(cls, record: ReminderRecord) -> "ReminderRead":
        return cls(**record.model_dump(exclude={"file_path"}), file_url=record.file_url)


class ReminderRemoved(BaseModel):
    removed: ReminderRead


class SubscriptionCreate(BaseModel):
    """Browser PushSubscription as produced by PushManager.subscribe()"""
    endpoint: Optional[str] = None
    keys: Dict[str, str] = Field(default_factory=dict)
    expirationTime: Optional[Any] = None


class SubscriptionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    endpoint: str
    keys: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    def subscription_info(self) -> Dict[str, Any]:
        """Shape expected by pywebpush"""
        return {"endpoint": self.endpoint, "keys": dict(self.keys)}


class SubscriptionCreated(BaseModel):
    id: str


class VapidPublicKey(BaseModel):
    publicKey: str


class ParsedPrescription(BaseModel):
    """One medication line extracted from free-text prescription"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    count: int = 1
    every_hours: Optional[int] = Field(default=None, validation_alias=AliasChoices("every_hours", "everyHours"))
    at_time: Optional[str] = Field(default=None, validation_alias=AliasChoices("at_time", "atTime"))


class ParsePrescriptionRequest(BaseModel):
    text: Optional[str] = None


class ParsePrescriptionResponse(BaseModel):
    parsed: List[ParsedPrescription]


class PrescriptionToRemindersRequest(BaseModel):
    parsed: Optional[Any] = None
    startDate: Optional[str] = None


class RemindersCreated(BaseModel):
    created: List[ReminderRead]
