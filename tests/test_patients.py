from datetime import datetime

from models.patient import Patient
from models.users import User

from conftest import auth_headers, make_appointment

REGISTRATION = {
    "email": "lucia@dentalclinic.com",
    "password": "s3cretpass",
    "displayName": "Lucia Fernandez",
    "address": "Avenida del Puerto 12",
    "phone": "611222333",
    "birthDate": "1988-03-04",
    "allergies": "Penicillin",
    "emergencyContactName": "Jorge Fernandez",
    "emergencyContactPhone": "611999888",
}


# --- register ---

def test_register_patient_creates_user_profile_and_session(client, db):
    response = client.post("/patients/register", json=REGISTRATION)
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["role"] == "patient"
    assert data["patient"]["userId"] == data["user"]["id"]
    assert data["patient"]["birthDate"] == "1988-03-04"
    assert data["patient"]["allergies"] == "Penicillin"
    assert data["patient"]["medicalHistory"] is None

    # The new session can immediately read its own profile
    profile = client.get("/patients/profile")
    assert profile.status_code == 200
    assert profile.json()["email"] == "lucia@dentalclinic.com"


def test_register_patient_duplicate_email(client, db, patient):
    response = client.post("/patients/register", json={**REGISTRATION, "email": "Carlos@DentalClinic.com"})
    assert response.status_code == 409
    assert response.json()["error"] == "An account with this email already exists."
    assert db.query(User).count() == 1


def test_register_patient_requires_contact_details(client, db):
    incomplete = {k: v for k, v in REGISTRATION.items() if k != "emergencyContactPhone"}
    response = client.post("/patients/register", json=incomplete)
    assert response.status_code == 400
    assert db.query(User).count() == 0


# --- list ---

def test_admin_lists_all_patients(client, db, admin, patient, other_patient):
    response = client.get("/patients", headers=auth_headers(db, admin))
    assert response.status_code == 200
    names = [p["displayName"] for p in response.json()["patients"]]
    assert names == ["Ana Torres", "Carlos Ruiz"]


def test_dentist_lists_only_their_patients(client, db, dentist, other_dentist, patient, other_patient):
    make_appointment(db, dentist, patient, datetime(2025, 6, 15, 10, 0), 30)
    make_appointment(db, dentist, patient, datetime(2025, 6, 16, 10, 0), 30)
    make_appointment(db, other_dentist, other_patient, datetime(2025, 6, 15, 10, 0), 30)

    response = client.get("/patients", headers=auth_headers(db, dentist))
    assert [p["id"] for p in response.json()["patients"]] == [patient.id]


def test_patient_lists_only_self(client, db, patient, other_patient):
    response = client.get("/patients", headers=auth_headers(db, patient.user))
    patients = response.json()["patients"]
    assert [p["id"] for p in patients] == [patient.id]
    assert patients[0]["email"] == "carlos@dentalclinic.com"


def test_plain_user_sees_no_patients(client, db, plain_user, patient):
    response = client.get("/patients", headers=auth_headers(db, plain_user))
    assert response.status_code == 200
    assert response.json() == {"patients": []}


# --- profile ---

def test_patient_reads_own_profile(client, db, patient):
    response = client.get("/patients/profile", headers=auth_headers(db, patient.user))
    assert response.status_code == 200
    profile = response.json()
    assert profile["id"] == patient.id
    assert profile["role"] == "patient"
    assert profile["displayName"] == "Carlos Ruiz"


def test_patient_cannot_read_other_profile(client, db, patient, other_patient):
    response = client.get(
        "/patients/profile", params={"patientId": other_patient.id}, headers=auth_headers(db, patient.user)
    )
    assert response.status_code == 403


def test_staff_must_name_the_patient(client, db, dentist, patient):
    headers = auth_headers(db, dentist)

    missing = client.get("/patients/profile", headers=headers)
    assert missing.status_code == 400
    assert missing.json()["error"] == "patientId is required for admin/dentist roles."

    found = client.get("/patients/profile", params={"patientId": patient.id}, headers=headers)
    assert found.status_code == 200

    unknown = client.get("/patients/profile", params={"patientId": 9999}, headers=headers)
    assert unknown.status_code == 404


def test_plain_user_cannot_read_profiles(client, db, plain_user, patient):
    response = client.get("/patients/profile", params={"patientId": patient.id}, headers=auth_headers(db, plain_user))
    assert response.status_code == 403


def test_patient_updates_own_profile(client, db, patient):
    response = client.post(
        "/patients/profile",
        json={"phone": "699111222", "medicalHistory": "Braces 2010"},
        headers=auth_headers(db, patient.user),
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    updated = response.json()["patient"]
    assert updated["phone"] == "699111222"
    assert updated["medicalHistory"] == "Braces 2010"
    assert updated["address"] == "Calle Mayor 1"


def test_profile_update_null_handling(client, db, admin, patient):
    db.query(Patient).filter(Patient.id == patient.id).update({"allergies": "Latex"})
    db.commit()

    response = client.post(
        "/patients/profile",
        json={"patientId": patient.id, "allergies": None, "address": None},
        headers=auth_headers(db, admin),
    )
    assert response.status_code == 200
    updated = response.json()["patient"]
    assert updated["allergies"] is None
    assert updated["address"] == "Calle Mayor 1"


def test_patient_cannot_update_other_profile(client, db, patient, other_patient):
    response = client.post(
        "/patients/profile",
        json={"patientId": other_patient.id, "phone": "000"},
        headers=auth_headers(db, patient.user),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden. Patients can only update their own profile."
