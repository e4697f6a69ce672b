from typing import Annotated, Literal, Optional, Union

from pydantic import Field, RootModel

from schemas.common import CamelModel, UtcDatetime


# Role tag present on every dashboard payload
class BaseStats(CamelModel):
    role: str


class DentistStats(BaseStats):
    role: Literal["dentist"] = "dentist"
    appointments_today: int
    total_patients: int
    upcoming_appointments: int


class PatientStats(BaseStats):
    role: Literal["patient"] = "patient"
    next_appointment_date: Optional[UtcDatetime] = None
    treatments_count: int


class AdminStats(BaseStats):
    role: Literal["admin"] = "admin"
    appointments_today: int
    total_appointments: int
    total_patients: int
    total_dentists: int


# Accounts without a clinical role only get their role back
class UserStats(BaseStats):
    role: Literal["user"] = "user"


# One of the above, selected by "role"
class DashboardStats(RootModel[Annotated[
    Union[DentistStats, PatientStats, AdminStats, UserStats],
    Field(discriminator="role"),
]]):
    pass
