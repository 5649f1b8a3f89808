"""
Repository layer for durable party records.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.core.errors import ConflictError
from app.models import ACTIVE_STATUSES, Party, PartyStatus

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [status.value for status in ACTIVE_STATUSES]


class PartyRepo:
    """Single-record party operations, one session per call."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def find_active(self) -> List[Party]:
        with self._session_factory() as db:
            return db.query(Party).filter(
                Party.status.in_(_ACTIVE_VALUES)
            ).order_by(Party.joined_at, Party.id).all()

    def find_by_id(self, party_id: str) -> Optional[Party]:
        with self._session_factory() as db:
            return db.query(Party).filter(Party.id == party_id).first()

    def find_active_by_client_id(self, client_id: str) -> Optional[Party]:
        with self._session_factory() as db:
            return db.query(Party).filter(
                Party.client_id == client_id,
                Party.status.in_(_ACTIVE_VALUES)
            ).first()

    def create_queued(
        self,
        name: str,
        party_size: int,
        client_id: str,
        joined_at: Optional[datetime] = None
    ) -> Party:
        party = Party(
            name=name,
            party_size=party_size,
            client_id=client_id,
            status=PartyStatus.QUEUED.value,
            joined_at=joined_at or datetime.utcnow(),
        )
        with self._session_factory() as db:
            db.add(party)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if "client_id" in str(e.orig):
                    raise ConflictError(client_id) from e
                raise
            db.refresh(party)
            return party

    def update_status(self, party_id: str, status: PartyStatus) -> None:
        self._update(party_id, status=PartyStatus(status).value)

    def mark_ready_to_checkin(self, party_id: str, ready_at: datetime) -> None:
        self._update(party_id, status=PartyStatus.READY_TO_CHECKIN.value, ready_at=ready_at)

    def mark_seated(
        self,
        party_id: str,
        service_ends_at: datetime,
        checked_in_at: Optional[datetime] = None
    ) -> None:
        self._update(
            party_id,
            status=PartyStatus.SEATED.value,
            checked_in_at=checked_in_at or datetime.utcnow(),
            service_ends_at=service_ends_at,
        )

    def _update(self, party_id: str, **fields) -> None:
        with self._session_factory() as db:
            updated = db.query(Party).filter(Party.id == party_id).update(fields)
            db.commit()
        if not updated:
            logger.warning(f"Party {party_id} not found while updating {sorted(fields)}")
