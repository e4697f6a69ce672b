# backend/models/treatment.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from database import Base
from utils.dates import utcnow

# A treatment performed on a patient, counted on the patient dashboard
class Treatment(Base):
    __tablename__ = "treatments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    dentist_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    description = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
