import os

# Settings are read at import time, configure them before the app is loaded
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from models.appointment import Appointment, AppointmentStatus
from models.patient import Patient
from models.users import User, UserRole
from utils.hashing import get_password_hash
from utils.session import create_session

PASSWORD = "password123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Hashing is slow, every fixture user shares one hash
_PASSWORD_HASH = get_password_hash(PASSWORD)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, email, role, display_name=None):
    user = User(
        email=email,
        password_hash=_PASSWORD_HASH,
        display_name=display_name or email.split("@")[0].title(),
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_patient(db, email, display_name=None):
    user = make_user(db, email, UserRole.PATIENT, display_name)
    patient = Patient(user_id=user.id, address="Calle Mayor 1", phone="600000000", birth_date=date(1990, 1, 1))
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def make_appointment(db, dentist, patient, start, duration=60, status=AppointmentStatus.PROGRAMADA, **extra):
    appointment = Appointment(
        appointment_date=start,
        duration_minutes=duration,
        dentist_id=dentist.id,
        patient_id=patient.id,
        status=status,
        **extra,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def auth_headers(db, user):
    return {"Authorization": f"Bearer {create_session(db, user)}"}


@pytest.fixture
def admin(db):
    return make_user(db, "admin@dentalclinic.com", UserRole.ADMIN, "Clinic Admin")


@pytest.fixture
def dentist(db):
    return make_user(db, "laura@dentalclinic.com", UserRole.DENTIST, "Dr. Laura Gomez")


@pytest.fixture
def other_dentist(db):
    return make_user(db, "pablo@dentalclinic.com", UserRole.DENTIST, "Dr. Pablo Diaz")


@pytest.fixture
def plain_user(db):
    return make_user(db, "visitor@dentalclinic.com", UserRole.USER, "Visitor")


@pytest.fixture
def patient(db):
    return make_patient(db, "carlos@dentalclinic.com", "Carlos Ruiz")


@pytest.fixture
def other_patient(db):
    return make_patient(db, "ana@dentalclinic.com", "Ana Torres")


@pytest.fixture
def slot():
    # 10:00 UTC on a fixed day
    return datetime(2025, 6, 15, 10, 0)
