"""Domain errors for the waitlist."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_PARTY = "INVALID_PARTY"
    ACTIVE_PARTY_EXISTS = "ACTIVE_PARTY_EXISTS"
    PARTY_NOT_FOUND = "PARTY_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class WaitlistValidationError(DomainError):
    """Raised when join input is rejected."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_PARTY, message=message)


class ConflictError(DomainError):
    """Raised when a client already has an active party."""

    def __init__(self, client_id: str) -> None:
        super().__init__(
            code=ErrorCode.ACTIVE_PARTY_EXISTS,
            message="An active party already exists for this client",
        )
        self.client_id = client_id


class PartyNotFoundError(DomainError):
    """Raised when a party is not found."""

    def __init__(self, party_id: str) -> None:
        super().__init__(code=ErrorCode.PARTY_NOT_FOUND, message="Party not found.")
        self.party_id = party_id


class InvalidTransitionError(DomainError):
    """Raised when a party's current status does not allow the requested change."""

    def __init__(self, party_id: str, status: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Party cannot move from '{status}' to '{target}'.",
        )
        self.party_id = party_id


class InternalError(DomainError):
    """Raised when the store or broadcast fails underneath a request."""

    def __init__(self, message: str = "Internal server error.") -> None:
        super().__init__(code=ErrorCode.INTERNAL_ERROR, message=message)
