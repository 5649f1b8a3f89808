"""
Waitlist queue and seating capacity engine.

The service owns the in-memory queue of parties that are waiting
(``queued`` or ``ready_to_checkin``) and the count of free seats. The
party store stays authoritative: every transition is persisted before the
in-memory state changes, and :meth:`WaitlistService.initialize` rebuilds the
queue, the seat count and the pending timers from the store after a restart.

Timer callbacks re-read the party from the store and do nothing when the
party has already moved on, so a late timer is always harmless.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol

from fastapi.encoders import jsonable_encoder

from app.core.config import Settings, settings as default_settings
from app.core.errors import (
    ConflictError,
    InternalError,
    InvalidTransitionError,
    PartyNotFoundError,
    WaitlistValidationError,
)
from app.models import Party, PartyStatus
from app.schemas.party import PartyResponse, WaitlistSnapshot
from app.services.repositories import PartyRepo
from app.services.timers import TimerRegistry

logger = logging.getLogger(__name__)

CHECKIN_TIMEOUT = "checkin_timeout"
SERVICE_COMPLETION = "service_completion"

JOINED_MESSAGE = "Successfully joined waitlist!"
ALREADY_JOINED_MESSAGE = "You are already on the waitlist!"
INVALID_JOIN_MESSAGE = "Name, valid party size, and a valid client ID are required."

_WAITING_STATUSES = (PartyStatus.QUEUED, PartyStatus.READY_TO_CHECKIN)


class Publisher(Protocol):
    """Fan-out channel for waitlist events"""

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


@dataclass
class JoinResult:
    party_id: str
    status: str
    message: str
    created: bool


class WaitlistService:
    """Seats parties from the waitlist as capacity frees up"""

    def __init__(
        self,
        repo: PartyRepo,
        publisher: Publisher,
        app_settings: Optional[Settings] = None,
        timers: Optional[TimerRegistry] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.repo = repo
        self.publisher = publisher
        self.settings = app_settings or default_settings
        self.timers = timers if timers is not None else TimerRegistry()
        self._now = now or datetime.utcnow
        self.capacity = self.settings.RESTAURANT_CAPACITY
        self._available_seats = self.capacity
        self._queue: List[Party] = []

    @property
    def available_seats(self) -> int:
        return self._available_seats

    def get_waitlist(self) -> List[Party]:
        """Queued and ready parties, earliest join first"""
        return [p for p in self._queue if p.status in _WAITING_STATUSES]

    def snapshot(self) -> Dict[str, Any]:
        snapshot = WaitlistSnapshot(
            waitlist=[PartyResponse.model_validate(p) for p in self.get_waitlist()],
            available_seats=self._available_seats,
        )
        return jsonable_encoder(snapshot, by_alias=True)

    # ---- startup ----

    async def initialize(self) -> None:
        """Rebuild queue, seat count and timers from the store"""
        try:
            active_parties = self.repo.find_active()
            now = self._now()
            waiting: List[Party] = []
            overdue: List[str] = []
            occupied = 0

            for party in active_parties:
                if party.status == PartyStatus.SEATED:
                    occupied += party.party_size
                    if party.service_ends_at is None:
                        logger.warning(
                            f"Party {party.id} is seated but has no service_ends_at. Cannot schedule completion."
                        )
                    elif party.service_ends_at > now:
                        self._schedule_service_completion(party, now)
                    else:
                        logger.info(f"Party {party.id}: service already ended. Completing immediately.")
                        overdue.append(party.id)
                elif party.status == PartyStatus.READY_TO_CHECKIN:
                    if self._reconcile_ready_party(party, now):
                        waiting.append(party)
                else:
                    waiting.append(party)
        except Exception:
            logger.exception("Error loading initial waitlist state")
            raise

        if occupied > self.capacity:
            logger.error(f"Seated parties occupy {occupied} seats, more than capacity {self.capacity}")
        self._available_seats = max(self.capacity - occupied, 0)
        self._queue = self._sorted(waiting)
        logger.info(
            f"Initial state loaded: available seats {self._available_seats}, "
            f"queued/ready parties {len(self._queue)}"
        )
        await self._emit_waitlist_update()

        for party_id in overdue:
            await self.complete_service(party_id)
        await self.check_current_or_next_party()

    def _reconcile_ready_party(self, party: Party, now: datetime) -> bool:
        """Re-arm or expire a ready party after restart; True if it stays waiting"""
        if party.ready_at is None:
            logger.warning(f"Party {party.id} is ready_to_checkin but has no ready_at. Marking as no_show.")
            self.repo.update_status(party.id, PartyStatus.NO_SHOW)
            return False

        deadline = self._checkin_deadline(party.ready_at)
        if now >= deadline:
            logger.info(f"Party {party.name} ({party.id}) missed check-in during restart. Marking as no_show.")
            self.repo.update_status(party.id, PartyStatus.NO_SHOW)
            return False

        self._schedule_checkin_timeout(party, now)
        return True

    def shutdown(self) -> None:
        cancelled = self.timers.cancel_all()
        logger.info(f"Waitlist shutting down, cancelled {cancelled} pending timers")

    # ---- requests ----

    async def join_party(self, name: str, party_size: int, client_id: str) -> JoinResult:
        """Add a party to the waitlist, or return the client's existing active party.

        Raises:
            WaitlistValidationError: If the input is invalid or the party is larger than the restaurant.
            InternalError: If the store fails.
        """
        self._validate_join(name, party_size, client_id)
        try:
            existing = self.repo.find_active_by_client_id(client_id)
            if existing:
                logger.info(f"Client {client_id} already has active party {existing.id}")
                return JoinResult(existing.id, existing.status, ALREADY_JOINED_MESSAGE, created=False)

            party = self.repo.create_queued(name, party_size, client_id, joined_at=self._now())
            self._add_party_to_queue(party)
            if len(self._queue) == 1:
                await self.check_current_or_next_party()

            await self._emit_waitlist_update()
            logger.info(f"Party {party.id} ({party.name}) joined waitlist")
            return JoinResult(party.id, party.status, JOINED_MESSAGE, created=True)
        except ConflictError:
            return self._recover_join_conflict(client_id)
        except Exception as e:
            logger.exception(f"Unhandled error joining waitlist for client {client_id}")
            raise InternalError() from e

    def _validate_join(self, name, party_size, client_id) -> None:
        if not isinstance(name, str) or not name.strip():
            raise WaitlistValidationError(INVALID_JOIN_MESSAGE)
        if not isinstance(client_id, str) or not client_id:
            raise WaitlistValidationError(INVALID_JOIN_MESSAGE)
        if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size <= 0:
            raise WaitlistValidationError(INVALID_JOIN_MESSAGE)
        if party_size > self.capacity:
            raise WaitlistValidationError(f"Party size cannot exceed {self.capacity}.")

    def _recover_join_conflict(self, client_id: str) -> JoinResult:
        logger.warning(f"Concurrent join detected for client {client_id}. Returning existing party.")
        try:
            existing = self.repo.find_active_by_client_id(client_id)
        except Exception as e:
            logger.exception(f"Failed to re-fetch active party for client {client_id}")
            raise InternalError() from e
        if existing is None:
            logger.error(f"Active party for client {client_id} vanished after a uniqueness conflict")
            raise InternalError()
        return JoinResult(existing.id, existing.status, ALREADY_JOINED_MESSAGE, created=False)

    async def get_party(self, party_id: str) -> Party:
        """Raises PartyNotFoundError for an unknown id"""
        try:
            party = self.repo.find_by_id(party_id)
        except Exception as e:
            logger.exception(f"Error retrieving party {party_id}")
            raise InternalError() from e
        if party is None:
            raise PartyNotFoundError(party_id)
        return party

    async def cancel_party(self, party_id: str) -> Party:
        """Take a queued party off the waitlist.

        Raises:
            PartyNotFoundError: If the party does not exist.
            InvalidTransitionError: If the party is no longer merely queued.
            InternalError: If the store fails.
        """
        party = await self.get_party(party_id)
        if party.status != PartyStatus.QUEUED:
            raise InvalidTransitionError(party.id, party.status, PartyStatus.CANCELLED.value)

        try:
            self.repo.update_status(party.id, PartyStatus.CANCELLED)
            party.status = PartyStatus.CANCELLED.value
            self._remove_party_from_queue(party.id)
            await self._emit_party_status_update(party.id, PartyStatus.CANCELLED)
            await self._emit_waitlist_update()
        except Exception as e:
            logger.exception(f"Error cancelling party {party_id}")
            raise InternalError() from e

        logger.info(f"Party {party.id} left the waitlist")
        await self.check_current_or_next_party()
        return party

    async def check_in_party(self, party_id: str) -> None:
        """Seat a ready party. Rejections and failures are only logged."""
        logger.info(f"Attempting check-in for party {party_id}")
        try:
            party = self._validate_party_for_service(party_id)
            if party is None:
                return

            now = self._now()
            service_ends_at = now + timedelta(
                seconds=party.party_size * self.settings.SERVICE_TIME_PER_PERSON_SECONDS
            )
            self.repo.mark_seated(party.id, service_ends_at, checked_in_at=now)
            self._deduct_seats(party.party_size)
            party.status = PartyStatus.SEATED.value
            party.checked_in_at = now
            party.service_ends_at = service_ends_at
            self._remove_party_from_queue(party.id)
            self.timers.cancel((CHECKIN_TIMEOUT, party.id))
            self._schedule_service_completion(party, now)

            await self._emit_capacity_update()
            await self._emit_waitlist_update()
            await self._emit_party_status_update(party.id, PartyStatus.SEATED)
            logger.info(
                f"Party {party.id} seated. Available seats: {self._available_seats}. "
                f"Service ends at {service_ends_at.isoformat()}"
            )
        except Exception:
            logger.exception(f"Error starting service for party {party_id}")
            return

        await self.check_current_or_next_party()

    def _validate_party_for_service(self, party_id: str) -> Optional[Party]:
        party = self.repo.find_by_id(party_id)
        if party is None:
            logger.warning(f"Check-in rejected: party {party_id} not found")
            return None
        if party.status != PartyStatus.READY_TO_CHECKIN:
            logger.warning(f"Check-in rejected: party {party_id} is '{party.status}', not ready_to_checkin")
            return None
        if party.party_size > self._available_seats:
            logger.warning(
                f"Check-in rejected: party {party_id} needs {party.party_size} seats, "
                f"{self._available_seats} available"
            )
            return None
        return party

    # ---- queue advancement ----

    async def check_current_or_next_party(self) -> Optional[Party]:
        """Call the head of the line forward if its party fits.

        Only the earliest queued party is considered; a party that does not
        fit holds everyone behind it until it is seated or leaves.
        """
        self._queue = self._sorted(self._queue)
        next_party = next((p for p in self._queue if p.status == PartyStatus.QUEUED), None)
        if next_party is None or next_party.party_size > self._available_seats:
            logger.info(f"No queued party can be called now. Available seats: {self._available_seats}")
            return None

        try:
            ready_at = self._now()
            self.repo.mark_ready_to_checkin(next_party.id, ready_at)
            next_party.status = PartyStatus.READY_TO_CHECKIN.value
            next_party.ready_at = ready_at
            self._schedule_checkin_timeout(next_party, ready_at)
            logger.info(f"Party {next_party.name} ({next_party.id}) is ready to check in")

            await self._emit_party_status_update(next_party.id, PartyStatus.READY_TO_CHECKIN)
            await self._emit_waitlist_update()
        except Exception:
            logger.exception(f"Error calling party {next_party.id} forward")
            return None
        return next_party

    # ---- timer callbacks ----

    async def handle_checkin_timeout(self, party_id: str) -> None:
        try:
            party = self.repo.find_by_id(party_id)
            if party is None:
                logger.info(f"Check-in timeout: party {party_id} not found")
                return
            if party.status != PartyStatus.READY_TO_CHECKIN:
                logger.info(f"Check-in timeout: party {party_id} is '{party.status}', nothing to do")
                return

            logger.info(f"Party {party.name} ({party.id}) missed check-in. Marking as no_show.")
            self.repo.update_status(party.id, PartyStatus.NO_SHOW)
            self._remove_party_from_queue(party.id)
            await self._emit_party_status_update(party.id, PartyStatus.NO_SHOW)
            await self._emit_waitlist_update()
        except Exception:
            logger.exception(f"Error handling check-in timeout for party {party_id}")
            return

        await self.check_current_or_next_party()

    async def complete_service(self, party_id: str) -> None:
        try:
            party = self.repo.find_by_id(party_id)
            if party is None:
                logger.warning(f"Service completion: party {party_id} not found")
                return
            if party.status != PartyStatus.SEATED:
                logger.info(f"Service completion: party {party_id} is '{party.status}', nothing to do")
                return

            self.repo.update_status(party.id, PartyStatus.COMPLETED)
            self._release_seats(party.party_size)

            await self._emit_capacity_update()
            await self._emit_waitlist_update()
            await self._emit_party_status_update(party.id, PartyStatus.COMPLETED)
            logger.info(
                f"Service completed for party {party.name} ({party.id}). "
                f"Available seats: {self._available_seats}"
            )
        except Exception:
            logger.exception(f"Error completing service for party {party_id}")
            return

        await self.check_current_or_next_party()

    # ---- helpers ----

    def _checkin_deadline(self, ready_at: datetime) -> datetime:
        return ready_at + timedelta(seconds=self.settings.CHECKIN_TIMEOUT_SECONDS)

    def _schedule_checkin_timeout(self, party: Party, now: datetime) -> None:
        delay = (self._checkin_deadline(party.ready_at) - now).total_seconds()
        self.timers.schedule((CHECKIN_TIMEOUT, party.id), delay, self.handle_checkin_timeout, party.id)
        logger.info(f"Party {party.id}: check-in timeout in {max(delay, 0):.0f}s")

    def _schedule_service_completion(self, party: Party, now: datetime) -> None:
        delay = (party.service_ends_at - now).total_seconds()
        self.timers.schedule((SERVICE_COMPLETION, party.id), delay, self.complete_service, party.id)
        logger.info(f"Party {party.id}: service completion in {max(delay, 0):.0f}s")

    def _deduct_seats(self, count: int) -> None:
        self._available_seats -= count

    def _release_seats(self, count: int) -> None:
        seats = self._available_seats + count
        if seats > self.capacity:
            logger.error(f"Releasing {count} seats would exceed capacity {self.capacity}; clamping")
            seats = self.capacity
        self._available_seats = seats

    def _add_party_to_queue(self, party: Party) -> None:
        self._queue = self._sorted(self._queue + [party])

    def _remove_party_from_queue(self, party_id: str) -> None:
        remaining = [p for p in self._queue if p.id != party_id]
        if len(remaining) == len(self._queue):
            logger.debug(f"Party {party_id} was not in the local queue")
        self._queue = remaining

    @staticmethod
    def _sorted(parties: List[Party]) -> List[Party]:
        return sorted(parties, key=lambda p: (p.joined_at, p.id))

    async def _emit_waitlist_update(self) -> None:
        await self.publisher.publish("waitlistUpdate", self.snapshot())

    async def _emit_party_status_update(self, party_id: str, status: PartyStatus) -> None:
        await self.publisher.publish("partyStatusUpdate", {"partyId": party_id, "newStatus": PartyStatus(status).value})

    async def _emit_capacity_update(self) -> None:
        await self.publisher.publish("capacityUpdate", {"availableSeats": self._available_seats})
