"""
Party model
"""

import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Index, text

from app.core.db import Base

class PartyStatus(str, Enum):
    QUEUED = "queued"
    READY_TO_CHECKIN = "ready_to_checkin"
    SEATED = "seated"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"

# Non-terminal statuses; a client may hold at most one party in these
ACTIVE_STATUSES = (PartyStatus.QUEUED, PartyStatus.READY_TO_CHECKIN, PartyStatus.SEATED)

_ACTIVE_CLAUSE = text("status IN ('queued', 'ready_to_checkin', 'seated')")

class Party(Base):
    __tablename__ = "parties"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    party_size = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False, default=PartyStatus.QUEUED.value)
    joined_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    ready_at = Column(DateTime, nullable=True)
    checked_in_at = Column(DateTime, nullable=True)
    service_ends_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "idx_parties_client_id_active",
            "client_id",
            unique=True,
            sqlite_where=_ACTIVE_CLAUSE,
            postgresql_where=_ACTIVE_CLAUSE,
        ),
        Index("idx_parties_joined_at", "joined_at"),
    )

    def __repr__(self) -> str:
        return f"<Party(id={self.id}, name={self.name}, size={self.party_size}, status={self.status})>"
