# backend/utils/permissions.py
"""
Declarative appointment authorization policy.

POLICY maps role -> operation -> Grant. A missing entry means the role may
never perform the operation; the Grant's scope is the ownership predicate
checked against the appointment's dentist_id / patient_id.
"""
import enum
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.orm import Session

from models.patient import Patient
from models.users import User, UserRole
from utils.errors import Forbidden


class Operation(str, enum.Enum):
    CREATE = "create"
    VIEW = "view"
    UPDATE = "update"
    CANCEL = "cancel"
    CONFIRM = "confirm"


class Scope(str, enum.Enum):
    ANY = "any"
    OWN_SCHEDULE = "own_schedule"   # appointment.dentist_id is the caller
    OWN_RECORD = "own_record"       # appointment.patient_id is the caller's patient row


@dataclass(frozen=True)
class Grant:
    scope: Scope
    edit_status: bool = False


POLICY: Dict[UserRole, Dict[Operation, Grant]] = {
    UserRole.ADMIN: {op: Grant(Scope.ANY, edit_status=True) for op in Operation},
    UserRole.DENTIST: {op: Grant(Scope.OWN_SCHEDULE, edit_status=True) for op in Operation},
    UserRole.PATIENT: {
        Operation.CREATE: Grant(Scope.OWN_RECORD),
        Operation.VIEW: Grant(Scope.OWN_RECORD),
        Operation.UPDATE: Grant(Scope.OWN_RECORD),
        Operation.CANCEL: Grant(Scope.OWN_RECORD),
    },
    UserRole.USER: {},
}

OWNERSHIP_MESSAGES = {
    (Operation.CREATE, Scope.OWN_RECORD): "Patients can only book appointments for themselves.",
    (Operation.CREATE, Scope.OWN_SCHEDULE): "Dentists can only book appointments for their own schedule.",
    (Operation.VIEW, Scope.OWN_RECORD): "You can only view your own appointments.",
    (Operation.VIEW, Scope.OWN_SCHEDULE): "You can only view appointments in your schedule.",
    (Operation.UPDATE, Scope.OWN_RECORD): "You can only update your own appointments.",
    (Operation.UPDATE, Scope.OWN_SCHEDULE): "You can only update appointments in your schedule.",
    (Operation.CANCEL, Scope.OWN_RECORD): "You can only cancel your own appointments.",
    (Operation.CANCEL, Scope.OWN_SCHEDULE): "You can only cancel appointments in your schedule.",
    (Operation.CONFIRM, Scope.OWN_SCHEDULE): "You can only confirm appointments in your schedule.",
}


# Resolved identity of the caller, built once per request
@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str
    patient_id: Optional[int] = None


def build_actor(db: Session, user: User) -> Actor:
    patient_id = None
    if user.role == UserRole.PATIENT:
        patient = db.query(Patient.id).filter(Patient.user_id == user.id).first()
        patient_id = patient.id if patient else None
    return Actor(user_id=user.id, role=user.role, patient_id=patient_id)


def grant_for(role: str, operation: Operation) -> Optional[Grant]:
    try:
        role = UserRole(role)
    except ValueError:
        return None
    return POLICY.get(role, {}).get(operation)


def require_grant(actor: Actor, operation: Operation) -> Grant:
    grant = grant_for(actor.role, operation)
    if grant is None:
        raise Forbidden(f"You do not have permission to {operation.value} appointments.")
    return grant


def owns(actor: Actor, scope: Scope, dentist_id: Optional[int], patient_id: Optional[int]) -> bool:
    if scope == Scope.ANY:
        return True
    if scope == Scope.OWN_SCHEDULE:
        return dentist_id == actor.user_id
    return actor.patient_id is not None and patient_id == actor.patient_id


def authorize(actor: Actor, operation: Operation, *, dentist_id: Optional[int], patient_id: Optional[int]) -> Grant:
    """Return the caller's grant for operation on the given slot or raise Forbidden."""
    grant = require_grant(actor, operation)
    if not owns(actor, grant.scope, dentist_id, patient_id):
        raise Forbidden(OWNERSHIP_MESSAGES.get((operation, grant.scope), "Forbidden"))
    return grant
