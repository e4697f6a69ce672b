# backend/models/session.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Server-side record behind the session cookie
class UserSession(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True) # opaque random token
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_accessed = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    user = relationship("User", lazy="joined")
