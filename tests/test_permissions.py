import pytest

from models.users import UserRole
from utils.errors import Forbidden
from utils.permissions import POLICY, Actor, Operation, Scope, authorize, build_actor, grant_for, require_grant

admin = Actor(user_id=1, role="admin")
dentist = Actor(user_id=2, role="dentist")
patient = Actor(user_id=3, role="patient", patient_id=30)
plain = Actor(user_id=4, role="user")


def test_policy_covers_every_role():
    assert set(POLICY) == set(UserRole)


@pytest.mark.parametrize("op", list(Operation))
def test_admin_may_do_anything_anywhere(op):
    grant = authorize(admin, op, dentist_id=99, patient_id=99)
    assert grant.scope == Scope.ANY
    assert grant.edit_status


@pytest.mark.parametrize("op", list(Operation))
def test_plain_user_has_no_appointment_rights(op):
    assert grant_for("user", op) is None
    with pytest.raises(Forbidden) as exc:
        require_grant(plain, op)
    assert exc.value.message == f"You do not have permission to {op.value} appointments."


def test_unknown_role_is_denied():
    assert grant_for("receptionist", Operation.VIEW) is None


def test_dentist_limited_to_own_schedule():
    assert authorize(dentist, Operation.CONFIRM, dentist_id=2, patient_id=30).edit_status
    with pytest.raises(Forbidden):
        authorize(dentist, Operation.CANCEL, dentist_id=7, patient_id=30)


def test_patient_limited_to_own_record():
    grant = authorize(patient, Operation.UPDATE, dentist_id=2, patient_id=30)
    assert not grant.edit_status
    with pytest.raises(Forbidden) as exc:
        authorize(patient, Operation.CREATE, dentist_id=2, patient_id=31)
    assert exc.value.message == "Patients can only book appointments for themselves."


def test_patient_cannot_confirm():
    with pytest.raises(Forbidden):
        authorize(patient, Operation.CONFIRM, dentist_id=2, patient_id=30)


def test_patient_without_profile_owns_nothing():
    orphan = Actor(user_id=5, role="patient", patient_id=None)
    with pytest.raises(Forbidden):
        authorize(orphan, Operation.VIEW, dentist_id=2, patient_id=None)


def test_build_actor_resolves_patient_row(db, patient, dentist):
    actor = build_actor(db, patient.user)
    assert actor.role == "patient"
    assert actor.patient_id == patient.id

    assert build_actor(db, dentist).patient_id is None
