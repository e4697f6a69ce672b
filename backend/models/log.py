from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Audit trail of authentication, patient and appointment events
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)

    # Event timestamp (naive UTC) and core action details
    ts = Column(DateTime, default=utcnow, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), index=True)
    resource = Column(String(50), index=True)
    status = Column(String(20), index=True)
    ip = Column(String(64), nullable=True)

    # Free-form context, e.g. appointment id or rejected email
    meta = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined", uselist=False)
