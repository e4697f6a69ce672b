# backend/utils/scheduling.py
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from models.appointment import Appointment
from models.users import User
from utils.appointment_status import NON_BLOCKING_STATUSES

# Upper bound for duration_minutes, also bounds the conflict scan window
MAX_DURATION_MINUTES = 24 * 60


# Half-open [start, end) range an appointment occupies
def effective_interval(start: datetime, duration_minutes: int) -> Tuple[datetime, datetime]:
    return start, start + timedelta(minutes=duration_minutes)


# [a_start, a_end) and [b_start, b_end) intersect; touching ends do not
def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def has_conflict(
    db: Session,
    dentist_id: int,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    """
    True when another calendar-occupying appointment of the dentist overlaps [start, end).

    The query narrows candidates to starts inside (start - MAX_DURATION, end);
    the exact overlap on the effective end time is decided below.
    """
    query = db.query(Appointment.id, Appointment.appointment_date, Appointment.duration_minutes).filter(
        Appointment.dentist_id == dentist_id,
        Appointment.status.notin_(list(NON_BLOCKING_STATUSES)),
        Appointment.appointment_date < end,
        Appointment.appointment_date > start - timedelta(minutes=MAX_DURATION_MINUTES),
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    for _, other_start, other_duration in query.all():
        other_start, other_end = effective_interval(other_start, other_duration)
        if intervals_overlap(start, end, other_start, other_end):
            return True
    return False


def lock_dentist_schedule(db: Session, dentist_id: int) -> Optional[User]:
    # Row lock on the dentist serialises check-then-insert until commit (no-op on SQLite)
    return db.query(User).filter(User.id == dentist_id).with_for_update().first()
