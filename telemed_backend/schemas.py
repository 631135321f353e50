"""
schemas.py
==========
Pydantic records consumed by the ranking, matching, triage and analytics
utilities, plus request/response bodies for the API.

Numeric fields coming from the data store are coerced to a neutral value
(0, or the nearest bound of their range) instead of failing validation.
"""

import math
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .models import (
    AppointmentStatus,
    LeadKind,
    LeadSource,
    PaymentStatus,
    UrgencyEnum,
)


def _as_float(value, default: float = 0.0) -> float:
    """Finite float for ``value``; NaN, infinities and junk give ``default``."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_enum(enum_cls, value):
    """Return the enum member for ``value`` or None when it is not a known value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# DOCTORS
# ---------------------------------------------------------------------------

class AvailabilitySlot(BaseModel):
    """Weekly availability window, e.g. monday 09:00-17:00."""
    day_of_week: str
    start_time: str
    end_time: str
    slot_duration_minutes: int = 30

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _lower_day(cls, value: object) -> str:
        return str(value or "").strip().lower()


class DoctorRecord(BaseModel):
    """Doctor profile as seen by ranking and matching."""
    id: Union[int, str]
    name: str = ""
    specializations: List[str] = Field(default_factory=list)
    rating: float = 0.0
    experience_years: int = 0
    consultation_fee: float = 0.0
    city: Optional[str] = None
    weekly_availability: List[AvailabilitySlot] = Field(default_factory=list)

    @field_validator("specializations", mode="before")
    @classmethod
    def _split_specializations(cls, value: object) -> list:
        if value is None:
            return []
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return [str(s).strip() for s in value if s and str(s).strip()]

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value: object) -> float:
        return min(max(_as_float(value), 0.0), 5.0)

    @field_validator("experience_years", mode="before")
    @classmethod
    def _non_negative_experience(cls, value: object) -> int:
        return max(_as_int(value), 0)

    @field_validator("consultation_fee", mode="before")
    @classmethod
    def _non_negative_fee(cls, value: object) -> float:
        return max(_as_float(value), 0.0)

    def has_specialization(self, specialization: Optional[str]) -> bool:
        if not specialization:
            return False
        wanted = specialization.strip().lower()
        return any(s.lower() == wanted for s in self.specializations)


class BookingRequest(BaseModel):
    """Request body for doctor recommendations."""
    specialization: str
    preferred_time: Optional[datetime] = None
    urgency: UrgencyEnum = UrgencyEnum.medium
    max_fee: Optional[float] = None
    symptoms: str = ""
    location: Optional[str] = None

    @field_validator("urgency", mode="before")
    @classmethod
    def _default_urgency(cls, value: object):
        return _as_enum(UrgencyEnum, value) or UrgencyEnum.medium


class DoctorMatch(BaseModel):
    doctor: DoctorRecord
    score: float


class TimeSlot(BaseModel):
    start_time: str
    end_time: str
    available: bool = True


# ---------------------------------------------------------------------------
# LEADS
# ---------------------------------------------------------------------------

class LeadRecord(BaseModel):
    """Lead as seen by the triage queue. ``priority`` is always recomputed."""
    id: Optional[Union[int, str]] = None
    kind: Optional[LeadKind] = None
    source: Optional[LeadSource] = LeadSource.website
    medical_condition: Optional[str] = None
    specialization: Optional[str] = None
    interaction_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    priority: int = 0
    qualified_at: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: object):
        return _as_enum(LeadKind, value)

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, value: object):
        return _as_enum(LeadSource, value)

    @field_validator("interaction_count", mode="before")
    @classmethod
    def _non_negative_interactions(cls, value: object) -> int:
        return max(_as_int(value), 0)


class LeadCreate(BaseModel):
    """Request body for capturing a new lead."""
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=3)
    kind: LeadKind
    source: LeadSource = LeadSource.website
    medical_condition: Optional[str] = None
    specialization: Optional[str] = None


class LeadResponse(BaseModel):
    id: int
    kind: str
    source: Optional[str] = None
    priority: int
    next_follow_up: Optional[datetime] = None
    possible_duplicates: List[str] = Field(default_factory=list)


class QueueStatus(BaseModel):
    total_leads: int = 0
    high_priority_count: int = 0
    medium_priority_count: int = 0
    low_priority_count: int = 0
    average_priority: float = 0.0


# ---------------------------------------------------------------------------
# APPOINTMENT SAMPLES
# ---------------------------------------------------------------------------

class AppointmentSample(BaseModel):
    """Timestamped appointment used by the windowed analytics."""
    id: Optional[Union[int, str]] = None
    timestamp: datetime
    doctor_id: Optional[Union[int, str]] = None
    patient_id: Optional[Union[int, str]] = None
    status: AppointmentStatus = AppointmentStatus.scheduled
    payment_status: PaymentStatus = PaymentStatus.pending
    fee: float = 0.0
    is_first_appointment: bool = False
    patient_rating: Optional[float] = None

    @field_validator("fee", mode="before")
    @classmethod
    def _neutral_fee(cls, value: object) -> float:
        return max(_as_float(value), 0.0)
