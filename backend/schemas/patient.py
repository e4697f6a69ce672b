from datetime import date
from typing import List, Optional

from pydantic import EmailStr, Field

from schemas.common import CamelModel, UtcDatetime
from schemas.user import UserResponse


# Stored patient profile
class PatientOut(CamelModel):
    id: int
    user_id: int
    address: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    allergies: Optional[str] = None
    medical_history: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


# Patient row joined with the owning user's public fields
class PatientListItem(PatientOut):
    display_name: str
    email: str
    avatar_url: Optional[str] = None


class PatientProfile(PatientListItem):
    role: str


class PatientsPage(CamelModel):
    patients: List[PatientListItem]


# Registration form: user account plus patient profile in one request
class PatientRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    birth_date: date
    allergies: Optional[str] = None
    medical_history: Optional[str] = None
    emergency_contact_name: str = Field(min_length=1)
    emergency_contact_phone: str = Field(min_length=1)


class PatientRegisterResponse(CamelModel):
    user: UserResponse
    patient: PatientOut


# Partial profile update; patientId is required for dentist/admin callers
class PatientProfileUpdate(CamelModel):
    patient_id: Optional[int] = Field(default=None, gt=0)
    address: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    birth_date: Optional[date] = None
    allergies: Optional[str] = None
    medical_history: Optional[str] = None
    emergency_contact_name: Optional[str] = Field(default=None, min_length=1)
    emergency_contact_phone: Optional[str] = Field(default=None, min_length=1)


class PatientProfileUpdateResponse(CamelModel):
    success: bool = True
    patient: PatientOut
