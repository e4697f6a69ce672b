# backend/routes/auth.py
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.log import Log
from models.session import UserSession
from models.users import User, UserRole
from schemas import user as schemas
from utils.audit import client_ip, write_log
from utils.dates import utcnow
from utils.errors import Conflict, TooManyRequests, Unauthenticated
from utils.hashing import get_password_hash, verify_password
from utils.session import clear_session_cookie, create_session, get_current_session, set_session_cookie

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


# Count recent failed logins for an email inside the lockout window
def _recent_failed_logins(db: Session, email: str) -> int:
    since = utcnow() - timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES)
    # Counting stops at the lockout threshold
    return (
        db.query(Log.id)
        .filter(
            Log.action == "LOGIN",
            Log.status == "FAIL",
            Log.ts >= since,
            Log.meta["email"].as_string() == email,
        )
        .limit(settings.LOGIN_MAX_ATTEMPTS)
        .count()
    )


# Register a new unprivileged user and open a session
@router.post("/register", response_model=schemas.UserEnvelope)
def register(payload: schemas.UserCreate, request: Request, response: Response, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = payload.email.strip().lower()

    # Check for existing user
    db_user = db.query(User).filter(func.lower(User.email) == normalized_email).first()
    if db_user:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": normalized_email, "reason": "Email exists"})
        raise Conflict("Registration failed: email already in use.")

    # Create new user instance with hashed password
    new_user = User(
        email=normalized_email,
        password_hash=get_password_hash(payload.password),
        display_name=payload.display_name,
        role=UserRole.USER.value,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    set_session_cookie(response, create_session(db, new_user))
    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": new_user.email})

    return {"user": schemas.UserResponse.model_validate(new_user)}


# Authenticate user and issue the session cookie
@router.post("/login", response_model=schemas.UserEnvelope)
def login(payload: schemas.UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()

    if _recent_failed_logins(db, email) >= settings.LOGIN_MAX_ATTEMPTS:
        logger.warning("Login locked out for %s", email)
        raise TooManyRequests(
            f"Too many failed login attempts. Please try again in {settings.LOGIN_LOCKOUT_MINUTES} minutes."
        )

    db_user = db.query(User).filter(func.lower(User.email) == email).first()

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": email})
        raise Unauthenticated("Invalid email or password")

    set_session_cookie(response, create_session(db, db_user))

    # Log successful login event
    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return {"user": schemas.UserResponse.model_validate(db_user)}


# Drop the server-side session and expire the cookie
@router.post("/logout", response_model=schemas.LogoutResponse)
def logout(
    request: Request,
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    user_id = session.user_id
    db.delete(session)
    db.commit()
    clear_session_cookie(response)

    write_log(db, user_id=user_id, action="LOGOUT", resource="auth", status="SUCCESS", ip=client_ip(request))
    return schemas.LogoutResponse()


# Retrieve current authenticated user details
@router.get("/session", response_model=schemas.UserEnvelope)
def current_session(session: UserSession = Depends(get_current_session)):
    if session.user is None:
        raise Unauthenticated()
    return {"user": schemas.UserResponse.model_validate(session.user)}
