import os
import sys
from datetime import date

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.patient import Patient
from models.users import User, UserRole
from utils.hashing import get_password_hash

# Demo accounts, password can be overridden with SEED_PASSWORD
SEED_PASSWORD = os.getenv("SEED_PASSWORD", "password123")
SEED_USERS = [
    {"email": "admin@dentalclinic.com", "display_name": "Clinic Admin", "role": UserRole.ADMIN},
    {"email": "dentist@dentalclinic.com", "display_name": "Dr. Laura Gomez", "role": UserRole.DENTIST},
    {"email": "patient@dentalclinic.com", "display_name": "Carlos Ruiz", "role": UserRole.PATIENT},
]


def get_or_create_user(session, email, display_name, role):
    user = session.query(User).filter(User.email == email).first()
    if user:
        print(f"User {email} already exists, skipping.")
        return user

    user = User(
        email=email,
        display_name=display_name,
        role=role.value,
        password_hash=get_password_hash(SEED_PASSWORD),
    )
    session.add(user)
    session.flush()
    print(f"Created {role.value} {email}")
    return user


def seed_database():
    """Create the demo admin, dentist and patient (safe to run repeatedly)."""
    init_db()
    session = SessionLocal()
    try:
        users = {}
        for account in SEED_USERS:
            users[account["role"]] = get_or_create_user(session, **account)

        patient_user = users[UserRole.PATIENT]
        if not session.query(Patient).filter(Patient.user_id == patient_user.id).first():
            session.add(Patient(
                user_id=patient_user.id,
                address="Calle Mayor 1, Madrid",
                phone="+34 600 000 000",
                birth_date=date(1990, 5, 17),
            ))
            print(f"Created patient profile for {patient_user.email}")

        session.commit()
        print("Seeding finished.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
