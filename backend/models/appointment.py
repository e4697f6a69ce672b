# backend/models/appointment.py
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Lifecycle stages of an appointment
class AppointmentStatus(str, enum.Enum):
    PROGRAMADA = "programada"   # scheduled
    CONFIRMADA = "confirmada"   # confirmed by the clinic
    COMPLETADA = "completada"   # visit took place
    CANCELADA = "cancelada"     # cancelled, frees the slot
    AUSENTE = "ausente"         # no-show, frees the slot

# The scheduling unit: one patient with one dentist over a time window
class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_date = Column(DateTime, nullable=False, index=True) # UTC start of the visit
    duration_minutes = Column(Integer, CheckConstraint("duration_minutes > 0"), nullable=False)

    dentist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)

    status = Column(
        Enum(
            AppointmentStatus,
            name="appointmentstatus",
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=AppointmentStatus.PROGRAMADA,
        nullable=False,
        index=True,
    )
    reason = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    dentist = relationship("User", lazy="joined")
    patient = relationship("Patient", back_populates="appointments", lazy="joined")
