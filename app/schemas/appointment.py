from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.appointment import AppointmentStatus

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentCreate(BaseModel):
    customer_id: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    appointment_date: date
    start_time: str = Field(pattern=_HHMM)
    end_time: str = Field(pattern=_HHMM)
    location: Optional[str] = None
    notes: Optional[str] = None
    worker_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AppointmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    appointment_date: Optional[date] = None
    start_time: Optional[str] = Field(default=None, pattern=_HHMM)
    end_time: Optional[str] = Field(default=None, pattern=_HHMM)
    location: Optional[str] = None
    notes: Optional[str] = None
    # workers to add; existing assignments are kept
    worker_ids: list[str] = Field(default_factory=list)


class StatusOverride(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class AppointmentOut(BaseModel):
    id: str
    customer_id: str
    staff_id: Optional[str]
    title: str
    description: Optional[str]
    appointment_date: date
    start_time: str
    end_time: str
    location: Optional[str]
    notes: Optional[str]
    status: str
    created_at: datetime
    public_url: Optional[str] = None

    class Config:
        from_attributes = True


class AssignmentOut(BaseModel):
    worker_id: str
    worker_name: Optional[str] = None
    has_started: bool
    started_at: Optional[datetime] = None
    has_completed: bool
    completed_at: Optional[datetime] = None
    note: Optional[str] = None
    virtual: bool = False


class EvidencePhotoOut(BaseModel):
    id: int
    url: str
    uploaded_by_worker_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None

    @field_validator("comment")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class RatingOut(BaseModel):
    rating: int
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SubmitForReview(BaseModel):
    note: Optional[str] = Field(default=None, max_length=2000)


class StagedPhotoOut(BaseModel):
    index: int
    url: str


class AppointmentSnapshot(BaseModel):
    """Everything a viewer needs to re-render after a change signal."""

    id: str
    title: str
    description: Optional[str]
    appointment_date: date
    start_time: str
    end_time: str
    location: Optional[str]
    notes: Optional[str]
    customer_name: Optional[str]
    customer_unit: Optional[str]
    status: str
    workers: list[AssignmentOut]
    photos: list[EvidencePhotoOut]
    rating: Optional[RatingOut]
    can_rate: bool


class EventOut(BaseModel):
    id: int
    event_type: str
    actor_user_id: Optional[str]
    message: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: Optional[str] = None
    unit_number: Optional[str] = None
    address: Optional[str] = None


class CustomerOut(BaseModel):
    id: str
    name: str
    phone: Optional[str]
    unit_number: Optional[str]
    address: Optional[str]

    class Config:
        from_attributes = True
