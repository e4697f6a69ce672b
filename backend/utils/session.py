# backend/utils/session.py
import logging
import random
import secrets
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.session import UserSession
from models.users import User
from utils.dates import utcnow, as_utc
from utils.errors import Unauthenticated

logger = logging.getLogger(__name__)

SESSION_EXPIRATION_SECONDS = settings.SESSION_EXPIRE_SECONDS
# Share of authenticated requests that also purge expired sessions
CLEANUP_PROBABILITY = 0.1

# Browsers send the cookie, API clients may use a bearer token instead
bearer_scheme = HTTPBearer(auto_error=False)


# Sign the opaque session id into the token handed to the client
def encode_session_token(session: UserSession) -> str:
    payload = {
        "sub": session.id,
        "iat": int(as_utc(session.created_at).timestamp()),
        "exp": int(as_utc(session.expires_at).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    session_id = payload.get("sub")
    return session_id if isinstance(session_id, str) else None


# Persist a new server-side session for the user and return its signed token
def create_session(db: Session, user: User) -> str:
    now = utcnow()
    session = UserSession(
        id=secrets.token_hex(32),
        user_id=user.id,
        created_at=now,
        last_accessed=now,
        expires_at=now + timedelta(seconds=SESSION_EXPIRATION_SECONDS),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return encode_session_token(session)


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_EXPIRATION_SECONDS,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="strict",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="strict",
    )


def purge_expired_sessions(db: Session) -> int:
    deleted = db.query(UserSession).filter(UserSession.expires_at <= utcnow()).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("Purged %s expired sessions", deleted)
    return deleted


# Resolve the request's session row or raise Unauthenticated
def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserSession:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise Unauthenticated()

    session_id = decode_session_token(token)
    if session_id is None:
        raise Unauthenticated()

    session = db.query(UserSession).filter(UserSession.id == session_id).first()
    if session is None:
        raise Unauthenticated()

    now = utcnow()
    if session.expires_at <= now:
        db.delete(session)
        db.commit()
        raise Unauthenticated("Session expired")

    session.last_accessed = now
    db.commit()

    if random.random() < CLEANUP_PROBABILITY:
        purge_expired_sessions(db)

    return session


# Retrieve the currently authenticated user
def get_current_user(session: UserSession = Depends(get_current_session)) -> User:
    if session.user is None:
        raise Unauthenticated()
    return session.user
