# backend/routes/dashboard.py

from datetime import timedelta
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.appointment import Appointment, AppointmentStatus
from models.patient import Patient
from models.treatment import Treatment
from models.users import User, UserRole
from schemas.dashboard import AdminStats, DashboardStats, DentistStats, PatientStats, UserStats
from utils.appointment_status import NON_BLOCKING_STATUSES
from utils.dates import utcnow
from utils.session import get_current_user

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"]
)


# Boundaries of the current UTC day
def _today_bounds():
    start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def _dentist_stats(db: Session, user: User) -> DentistStats:
    day_start, day_end = _today_bounds()
    mine = db.query(Appointment).filter(Appointment.dentist_id == user.id)

    appointments_today = mine.filter(
        Appointment.appointment_date >= day_start,
        Appointment.appointment_date < day_end,
    ).count()

    total_patients = (
        db.query(func.count(func.distinct(Appointment.patient_id)))
        .filter(Appointment.dentist_id == user.id)
        .scalar()
    ) or 0

    # Future appointments that still hold a slot
    upcoming = mine.filter(
        Appointment.appointment_date >= utcnow(),
        Appointment.status.in_([AppointmentStatus.PROGRAMADA, AppointmentStatus.CONFIRMADA]),
    ).count()

    return DentistStats(
        role=user.role,
        appointments_today=appointments_today,
        total_patients=total_patients,
        upcoming_appointments=upcoming,
    )


def _patient_stats(db: Session, user: User) -> PatientStats:
    patient = db.query(Patient).filter(Patient.user_id == user.id).first()
    if patient is None:
        return PatientStats(role=user.role, next_appointment_date=None, treatments_count=0)

    next_appointment = (
        db.query(Appointment)
        .filter(
            Appointment.patient_id == patient.id,
            Appointment.appointment_date >= utcnow(),
            Appointment.status.notin_(list(NON_BLOCKING_STATUSES)),
        )
        .order_by(Appointment.appointment_date.asc())
        .first()
    )
    treatments_count = db.query(Treatment).filter(Treatment.patient_id == patient.id).count()

    return PatientStats(
        role=user.role,
        next_appointment_date=next_appointment.appointment_date if next_appointment else None,
        treatments_count=treatments_count,
    )


def _admin_stats(db: Session, user: User) -> AdminStats:
    day_start, day_end = _today_bounds()
    return AdminStats(
        role=user.role,
        appointments_today=db.query(Appointment).filter(
            Appointment.appointment_date >= day_start,
            Appointment.appointment_date < day_end,
        ).count(),
        total_appointments=db.query(Appointment).count(),
        total_patients=db.query(Patient).count(),
        total_dentists=db.query(User).filter(User.role == UserRole.DENTIST.value).count(),
    )


# === Role specific dashboard summary ===

# Payload shape depends on the caller role
@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if current_user.role == UserRole.DENTIST:
        return _dentist_stats(db, current_user)
    if current_user.role == UserRole.PATIENT:
        return _patient_stats(db, current_user)
    if current_user.role == UserRole.ADMIN:
        return _admin_stats(db, current_user)
    return UserStats(role=current_user.role)
