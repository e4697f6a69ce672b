from models.users import User, UserRole
from models.patient import Patient
from models.appointment import Appointment, AppointmentStatus
from models.session import UserSession
from models.treatment import Treatment
from models.log import Log

__all__ = ["User", "UserRole", "Patient", "Appointment", "AppointmentStatus", "UserSession",
           "Treatment", "Log"]
