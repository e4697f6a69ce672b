# backend/models/patient.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Medical and contact profile, one-to-one with a user of role "patient"
class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)

    # Contact details (required at registration, nullable for seeded rows)
    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    birth_date = Column(Date, nullable=True)

    # Clinical notes
    allergies = Column(Text, nullable=True)
    medical_history = Column(Text, nullable=True)

    emergency_contact_name = Column(String, nullable=True)
    emergency_contact_phone = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="patient", lazy="joined")
    appointments = relationship("Appointment", back_populates="patient")
