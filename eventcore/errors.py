"""Domain errors raised by the ticketing core.

Every error carries an ErrorCode and a message that is safe to show to
callers. Services raise them, routers translate them to HTTP responses.
"""

from enum import Enum


class ErrorCode(Enum):
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    CODE_GENERATION_FAILED = "CODE_GENERATION_FAILED"
    DUPLICATE_SLUG = "DUPLICATE_SLUG"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    DUPLICATE_TICKET = "DUPLICATE_TICKET"
    EVENT_NOT_ON_SALE = "EVENT_NOT_ON_SALE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    NOT_CONFIRMED = "NOT_CONFIRMED"
    ALREADY_USED = "ALREADY_USED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    HASH_FAILURE = "HASH_FAILURE"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, key) -> None:
        super().__init__(f"{entity} {key!r} not found")
        self.entity = entity
        self.key = key


class CapacityExceeded(DomainError):
    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(self, event_id: int, capacity: int) -> None:
        super().__init__(f"Event {event_id} is sold out (capacity {capacity})")
        self.event_id = event_id
        self.capacity = capacity


class CodeGenerationFailed(DomainError):
    code = ErrorCode.CODE_GENERATION_FAILED

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not generate a unique ticket code after {attempts} attempts")
        self.attempts = attempts


class DuplicateSlug(DomainError):
    code = ErrorCode.DUPLICATE_SLUG

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug {slug!r} is already taken")
        self.slug = slug


class DuplicateEmail(DomainError):
    code = ErrorCode.DUPLICATE_EMAIL

    def __init__(self, email: str) -> None:
        super().__init__("A user with this email already exists")
        self.email = email


class DuplicateTicket(DomainError):
    """Raised when a user already holds an active ticket for the event."""

    code = ErrorCode.DUPLICATE_TICKET

    def __init__(self, event_id: int, user_id: int) -> None:
        super().__init__(f"User {user_id} already holds a ticket for event {event_id}")
        self.event_id = event_id
        self.user_id = user_id


class EventNotOnSale(DomainError):
    """Raised when tickets are requested for an event that is not published."""

    code = ErrorCode.EVENT_NOT_ON_SALE

    def __init__(self, event_id: int, status: str) -> None:
        super().__init__(f"Event {event_id} is not on sale (status {status})")
        self.event_id = event_id
        self.status = status


class InvalidTransition(DomainError):
    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"{entity} cannot move from {current} to {target}")
        self.entity = entity
        self.current = current
        self.target = target


class NotConfirmed(DomainError):
    code = ErrorCode.NOT_CONFIRMED

    def __init__(self, qr_code: str) -> None:
        super().__init__("Ticket is pending confirmation")
        self.qr_code = qr_code


class AlreadyUsed(DomainError):
    code = ErrorCode.ALREADY_USED

    def __init__(self, qr_code: str) -> None:
        super().__init__("Ticket has already been checked in")
        self.qr_code = qr_code


class AlreadyCancelled(DomainError):
    code = ErrorCode.ALREADY_CANCELLED

    def __init__(self, qr_code: str) -> None:
        super().__init__("Ticket has been cancelled")
        self.qr_code = qr_code


class HashFailure(DomainError):
    code = ErrorCode.HASH_FAILURE

    def __init__(self, reason: str = "password hashing failed") -> None:
        super().__init__(reason)
