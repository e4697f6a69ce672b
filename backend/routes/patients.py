# backend/routes/patients.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from database import get_db
from models.appointment import Appointment
from models.patient import Patient
from models.users import User, UserRole
from schemas.patient import (
    PatientListItem, PatientOut, PatientProfile, PatientProfileUpdate, PatientProfileUpdateResponse,
    PatientRegister, PatientRegisterResponse, PatientsPage,
)
from schemas.user import UserResponse
from utils.audit import client_ip, write_log
from utils.dates import utcnow
from utils.errors import Conflict, Forbidden, NotFound, ValidationError
from utils.hashing import get_password_hash
from utils.session import create_session, get_current_user, set_session_cookie

router = APIRouter(prefix="/patients", tags=["Patients"])
logger = logging.getLogger(__name__)

# Profile columns that may be explicitly cleared with null
NULLABLE_PROFILE_FIELDS = {"allergies", "medical_history"}


def _patient_fields(patient: Patient) -> dict:
    return PatientOut.model_validate(patient).model_dump()


def _to_list_item(patient: Patient) -> PatientListItem:
    return PatientListItem(
        **_patient_fields(patient),
        display_name=patient.user.display_name,
        email=patient.user.email,
        avatar_url=patient.user.avatar_url,
    )


def _own_patient_or_404(db: Session, user: User) -> Patient:
    patient = db.query(Patient).filter(Patient.user_id == user.id).first()
    if not patient:
        raise NotFound("Patient profile not found for this user.")
    return patient


# Resolve which patient row the caller targets: their own, or patientId for staff
def _target_patient_id(db: Session, user: User, requested_id: Optional[int], action: str) -> int:
    if user.role == UserRole.PATIENT:
        own = _own_patient_or_404(db, user)
        if requested_id and requested_id != own.id:
            raise Forbidden(f"Forbidden. Patients can only {action} their own profile.")
        return own.id
    if user.role in (UserRole.ADMIN, UserRole.DENTIST):
        if not requested_id:
            raise ValidationError("patientId is required for admin/dentist roles.")
        return requested_id
    raise Forbidden("Forbidden. Insufficient permissions.")


# List patients visible to the caller
@router.get("", response_model=PatientsPage)
def list_patients(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(Patient).join(User, Patient.user_id == User.id)

    if current_user.role == UserRole.PATIENT:
        query = query.filter(Patient.user_id == current_user.id)
    elif current_user.role == UserRole.DENTIST:
        # Patients with at least one appointment on the dentist's schedule
        seen = select(Appointment.patient_id).where(Appointment.dentist_id == current_user.id)
        query = query.filter(Patient.id.in_(seen))
    elif current_user.role != UserRole.ADMIN:
        return {"patients": []}

    patients = query.order_by(User.display_name.asc(), Patient.id.asc()).all()
    return {"patients": [_to_list_item(p) for p in patients]}


# Read one patient profile
@router.get("/profile", response_model=PatientProfile)
def get_profile(
    patient_id: Optional[int] = Query(None, alias="patientId", gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    target_id = _target_patient_id(db, current_user, patient_id, "view")

    patient = db.query(Patient).filter(Patient.id == target_id).first()
    if not patient:
        raise NotFound("Patient profile not found.")

    return PatientProfile(**_to_list_item(patient).model_dump(), role=patient.user.role)


# Update contact / medical details of a patient
@router.post("/profile", response_model=PatientProfileUpdateResponse)
def update_profile(
    payload: PatientProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    target_id = _target_patient_id(db, current_user, payload.patient_id, "update")

    patient = db.query(Patient).filter(Patient.id == target_id).first()
    if not patient:
        raise NotFound("Patient profile not found or update failed.")

    changes = payload.model_dump(exclude_unset=True, exclude={"patient_id"})
    for field, value in changes.items():
        if value is None and field not in NULLABLE_PROFILE_FIELDS:
            continue
        setattr(patient, field, value)
    patient.updated_at = utcnow()

    db.commit()
    db.refresh(patient)

    write_log(db, user_id=current_user.id, action="PATIENT_PROFILE_UPDATE", resource="patients",
              status="SUCCESS", ip=client_ip(request),
              meta={"patient_id": patient.id, "fields": sorted(changes.keys())})

    return {"success": True, "patient": PatientOut.model_validate(patient)}


# Public self-registration: user account and patient profile in one transaction
@router.post("/register", response_model=PatientRegisterResponse)
def register_patient(payload: PatientRegister, request: Request, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()

    if db.query(User.id).filter(func.lower(User.email) == email).first():
        write_log(db, user_id=None, action="PATIENT_REGISTER", resource="patients", status="FAIL",
                  ip=client_ip(request), meta={"email": email, "reason": "Email exists"})
        raise Conflict("An account with this email already exists.")

    user = User(
        email=email,
        password_hash=get_password_hash(payload.password),
        display_name=payload.display_name,
        role=UserRole.PATIENT.value,
    )
    patient_data = payload.model_dump(exclude={"email", "password", "display_name"})
    try:
        db.add(user)
        db.flush()
        patient = Patient(user_id=user.id, **patient_data)
        db.add(patient)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Patient registration failed for %s", email)
        raise
    db.refresh(user)
    db.refresh(patient)

    set_session_cookie(response, create_session(db, user))
    write_log(db, user_id=user.id, action="PATIENT_REGISTER", resource="patients", status="SUCCESS",
              ip=client_ip(request), meta={"email": email, "patient_id": patient.id})

    return {"user": UserResponse.model_validate(user), "patient": PatientOut.model_validate(patient)}
