# backend/models/users.py
import enum
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Roles recognised by the authorization policy
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    DENTIST = "dentist"
    PATIENT = "patient"
    USER = "user"

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    # Fixed at creation time
    role = Column(String(20), nullable=False, default=UserRole.USER.value, index=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    patient = relationship("Patient", back_populates="user", uselist=False)
