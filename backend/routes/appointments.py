# backend/routes/appointments.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models.appointment import Appointment, AppointmentStatus
from models.patient import Patient
from models.users import User, UserRole
from schemas.appointment import (
    AppointmentAction, AppointmentCancelResponse, AppointmentCreate, AppointmentEnvelope,
    AppointmentListItem, AppointmentOut, AppointmentsList, AppointmentUpdate, BookingRangeBound,
)
from schemas.common import PersonRef
from utils.appointment_status import INITIAL_STATUS, ensure_transition, occupies_calendar
from utils.audit import client_ip, write_log
from utils.dates import to_utc_naive, utcnow
from utils.errors import Forbidden, NotFound, SchedulingConflict, ValidationError
from utils.permissions import Actor, Operation, Scope, authorize, build_actor, grant_for, require_grant
from utils.scheduling import effective_interval, has_conflict, lock_dentist_schedule
from utils.session import get_current_user

router = APIRouter(prefix="/appointments", tags=["Appointments"])
logger = logging.getLogger(__name__)

# Name of the PostgreSQL range-exclusion constraint installed by the initial migration
OVERLAP_CONSTRAINT = "appointments_no_overlap"


def get_actor(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Actor:
    return build_actor(db, user)


def _to_out(appointment: Appointment) -> AppointmentOut:
    return AppointmentOut.model_validate(appointment)


# Map an Appointment with its participants to the calendar entry schema
def _to_list_item(appointment: Appointment) -> AppointmentListItem:
    patient_user = appointment.patient.user if appointment.patient else None
    return AppointmentListItem(
        id=appointment.id,
        appointment_date=appointment.appointment_date,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status,
        reason=appointment.reason,
        notes=appointment.notes,
        patient_id=appointment.patient_id,
        dentist_id=appointment.dentist_id,
        patient=PersonRef(
            id=appointment.patient_id,
            display_name=patient_user.display_name if patient_user else "",
        ),
        dentist=PersonRef(
            id=appointment.dentist_id,
            display_name=appointment.dentist.display_name if appointment.dentist else "",
        ),
    )


def _get_appointment_or_404(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFound("Appointment not found.")
    return appointment


# Commit a create/update that occupies a slot; the exclusion constraint may still reject it
def _commit_schedule_change(db: Session):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if OVERLAP_CONSTRAINT in str(e.orig):
            logger.warning("Overlap rejected by database constraint: %s", e.orig)
            raise SchedulingConflict()
        raise


# List appointments visible to the caller, optionally limited to a date range
@router.get("", response_model=AppointmentsList)
def list_appointments(
    start_date: Optional[BookingRangeBound] = Query(None, alias="startDate"),
    end_date: Optional[BookingRangeBound] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    grant = grant_for(actor.role, Operation.VIEW)
    if grant is None:
        # Unprivileged accounts see an empty calendar
        return {"appointments": []}

    query = db.query(Appointment)
    if grant.scope == Scope.OWN_SCHEDULE:
        query = query.filter(Appointment.dentist_id == actor.user_id)
    elif grant.scope == Scope.OWN_RECORD:
        if actor.patient_id is None:
            return {"appointments": []}
        query = query.filter(Appointment.patient_id == actor.patient_id)

    # Naive bounds are read as UTC
    start_date = to_utc_naive(start_date) if start_date else None
    end_date = to_utc_naive(end_date) if end_date else None
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate.")
    if start_date:
        query = query.filter(Appointment.appointment_date >= start_date)
    if end_date:
        query = query.filter(Appointment.appointment_date <= end_date)

    rows = query.order_by(Appointment.appointment_date.asc(), Appointment.id.asc()).all()
    return {"appointments": [_to_list_item(a) for a in rows]}


# Book a new appointment
@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    grant = require_grant(actor, Operation.CREATE)

    # Patients book for their own record when patientId is omitted
    patient_id = payload.patient_id
    if grant.scope == Scope.OWN_RECORD and patient_id is None:
        if actor.patient_id is None:
            raise NotFound("Patient profile not found for this user.")
        patient_id = actor.patient_id

    authorize(actor, Operation.CREATE, dentist_id=payload.dentist_id, patient_id=patient_id)

    if patient_id is None:
        if grant.scope == Scope.OWN_SCHEDULE:
            raise ValidationError("Patient ID is required when a dentist creates an appointment.")
        raise ValidationError("Patient ID is required.")

    dentist = lock_dentist_schedule(db, payload.dentist_id)
    if dentist is None or dentist.role != UserRole.DENTIST:
        raise ValidationError("Dentist not found.")
    if db.query(Patient.id).filter(Patient.id == patient_id).first() is None:
        raise ValidationError("Patient not found.")

    start, end = effective_interval(to_utc_naive(payload.appointment_date), payload.duration_minutes)
    if has_conflict(db, payload.dentist_id, start, end):
        db.rollback()
        write_log(db, user_id=actor.user_id, action="APPOINTMENT_CREATE", resource="appointments",
                  status="FAIL", ip=client_ip(request),
                  meta={"dentist_id": payload.dentist_id, "reason": "conflict", "start": start.isoformat()})
        raise SchedulingConflict()

    now = utcnow()
    appointment = Appointment(
        appointment_date=start,
        duration_minutes=payload.duration_minutes,
        reason=payload.reason,
        notes=payload.notes,
        dentist_id=payload.dentist_id,
        patient_id=patient_id,
        status=INITIAL_STATUS,
        created_at=now,
        updated_at=now,
    )
    db.add(appointment)
    _commit_schedule_change(db)
    db.refresh(appointment)

    write_log(db, user_id=actor.user_id, action="APPOINTMENT_CREATE", resource="appointments",
              status="SUCCESS", ip=client_ip(request),
              meta={"appointment_id": appointment.id, "dentist_id": appointment.dentist_id,
                    "patient_id": appointment.patient_id})

    return {"appointment": _to_out(appointment)}


# Change date, duration, reason, notes or status of an appointment
@router.post("/update", response_model=AppointmentEnvelope)
def update_appointment(
    payload: AppointmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    appointment = _get_appointment_or_404(db, payload.id)
    grant = authorize(actor, Operation.UPDATE, dentist_id=appointment.dentist_id, patient_id=appointment.patient_id)

    # Explicit nulls are treated as "not supplied", except notes which may be cleared
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True, exclude={"id"}).items()
        if value is not None or key == "notes"
    }

    current_status = AppointmentStatus(appointment.status)
    new_status = changes.get("status")
    if new_status is not None and new_status == current_status:
        new_status = None
    if new_status is not None:
        if not grant.edit_status:
            raise Forbidden("You cannot change the status of this appointment.")
        ensure_transition(current_status, new_status, action=f"set status '{new_status.value}' on")

    new_start = to_utc_naive(changes["appointment_date"]) if "appointment_date" in changes else appointment.appointment_date
    new_duration = changes.get("duration_minutes", appointment.duration_minutes)
    time_changed = new_start != appointment.appointment_date or new_duration != appointment.duration_minutes

    # Only a moved window that still occupies the calendar needs a fresh conflict check
    if time_changed and occupies_calendar(new_status or current_status):
        lock_dentist_schedule(db, appointment.dentist_id)
        start, end = effective_interval(new_start, new_duration)
        if has_conflict(db, appointment.dentist_id, start, end, exclude_appointment_id=appointment.id):
            raise SchedulingConflict("The selected time slot conflicts with another appointment.")

    if time_changed:
        appointment.appointment_date = new_start
        appointment.duration_minutes = new_duration
    for field in ("reason", "notes"):
        if field in changes:
            setattr(appointment, field, changes[field])
    if new_status is not None:
        appointment.status = new_status
    appointment.updated_at = utcnow()

    _commit_schedule_change(db)
    db.refresh(appointment)

    write_log(db, user_id=actor.user_id, action="APPOINTMENT_UPDATE", resource="appointments",
              status="SUCCESS", ip=client_ip(request),
              meta={"appointment_id": appointment.id, "fields": sorted(changes.keys())})

    return {"appointment": _to_out(appointment)}


# Cancel an appointment; repeating the call is a no-op
@router.post("/cancel", response_model=AppointmentCancelResponse)
def cancel_appointment(
    payload: AppointmentAction,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    appointment = _get_appointment_or_404(db, payload.id)
    authorize(actor, Operation.CANCEL, dentist_id=appointment.dentist_id, patient_id=appointment.patient_id)

    if appointment.status == AppointmentStatus.CANCELADA:
        return {"appointment": _to_out(appointment), "message": "Appointment is already cancelled."}

    old_status = AppointmentStatus(appointment.status)
    ensure_transition(old_status, AppointmentStatus.CANCELADA, action="cancel")
    appointment.status = AppointmentStatus.CANCELADA
    appointment.updated_at = utcnow()
    db.commit()
    db.refresh(appointment)

    write_log(db, user_id=actor.user_id, action="APPOINTMENT_CANCEL", resource="appointments",
              status="SUCCESS", ip=client_ip(request),
              meta={"appointment_id": appointment.id, "old": old_status.value})

    return {"appointment": _to_out(appointment)}


# Confirm a scheduled appointment (dentist of the schedule or admin)
@router.post("/confirm", response_model=AppointmentEnvelope)
def confirm_appointment(
    payload: AppointmentAction,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    appointment = _get_appointment_or_404(db, payload.id)
    authorize(actor, Operation.CONFIRM, dentist_id=appointment.dentist_id, patient_id=appointment.patient_id)

    ensure_transition(appointment.status, AppointmentStatus.CONFIRMADA, action="confirm")
    appointment.status = AppointmentStatus.CONFIRMADA
    appointment.updated_at = utcnow()
    db.commit()
    db.refresh(appointment)

    write_log(db, user_id=actor.user_id, action="APPOINTMENT_CONFIRM", resource="appointments",
              status="SUCCESS", ip=client_ip(request), meta={"appointment_id": appointment.id})

    return {"appointment": _to_out(appointment)}
