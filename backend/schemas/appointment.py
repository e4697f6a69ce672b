from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, AwareDatetime, Field

from models.appointment import AppointmentStatus
from schemas.common import CamelModel, PersonRef, UtcDatetime
from utils.scheduling import MAX_DURATION_MINUTES

StrictId = Annotated[int, Field(strict=True)]
DurationMinutes = Annotated[int, Field(strict=True, gt=0, le=MAX_DURATION_MINUTES)]

# Calendar years accepted for appointment dates and range filters
MIN_BOOKING_YEAR = 1900
MAX_BOOKING_YEAR = 2999


def within_booking_years(value: datetime) -> datetime:
    if not MIN_BOOKING_YEAR <= value.year <= MAX_BOOKING_YEAR:
        raise ValueError(f"date must fall between the years {MIN_BOOKING_YEAR} and {MAX_BOOKING_YEAR}")
    return value


BookingInstant = Annotated[AwareDatetime, AfterValidator(within_booking_years)]
BookingRangeBound = Annotated[datetime, AfterValidator(within_booking_years)]


# Booking request; status is not accepted, new appointments start as "programada"
class AppointmentCreate(CamelModel):
    appointment_date: BookingInstant
    duration_minutes: DurationMinutes
    reason: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    dentist_id: StrictId
    patient_id: Optional[StrictId] = None


# Partial update of an existing appointment
class AppointmentUpdate(CamelModel):
    id: StrictId
    appointment_date: Optional[BookingInstant] = None
    duration_minutes: Optional[DurationMinutes] = None
    reason: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None


# Body of cancel / confirm
class AppointmentAction(CamelModel):
    id: StrictId


# Full appointment record
class AppointmentOut(CamelModel):
    id: int
    appointment_date: UtcDatetime
    duration_minutes: int
    dentist_id: int
    patient_id: int
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class AppointmentEnvelope(CamelModel):
    appointment: AppointmentOut


class AppointmentCancelResponse(AppointmentEnvelope):
    message: Optional[str] = None


# Calendar entry with display names of both participants
class AppointmentListItem(CamelModel):
    id: int
    appointment_date: UtcDatetime
    duration_minutes: int
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    patient_id: int
    dentist_id: int
    patient: PersonRef
    dentist: PersonRef


class AppointmentsList(CamelModel):
    appointments: List[AppointmentListItem]
