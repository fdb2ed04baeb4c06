"""Error taxonomy of the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


class RollcallError(Exception):
    """Base class for engine errors."""


class InvalidIdentityFormat(RollcallError, ValueError):
    """A raw identifier does not normalize to a supported national identifier shape."""

    def __init__(self, raw: object, *, digits: int) -> None:
        self.raw = raw
        self.digits = digits
        super().__init__(f"Invalid identifier {raw!r}: expected 11 or 14 digits, got {digits}")


class ConcurrentCheckInDetected(RollcallError):
    """Another writer created the check-in first; never surfaced to callers."""

    def __init__(self, registration_id: UUID) -> None:
        self.registration_id = registration_id
        super().__init__(f"Check-in for registration {registration_id} already exists")


class RegistryUnavailable(RollcallError):
    """The external registry could not be reached or returned an unusable payload."""

    def __init__(self, message: str, *, external_ref: str | None = None) -> None:
        self.external_ref = external_ref
        super().__init__(message)


class DuplicateRegistrationAmbiguity(RollcallError):
    """Duplicate resolution could not produce a strict order between candidates."""

    def __init__(self, first: UUID, second: UUID) -> None:
        self.first = first
        self.second = second
        super().__init__(f"Registrations {first} and {second} rank identically")


class RegistrationNotFound(RollcallError, LookupError):
    def __init__(self, registration_id: UUID) -> None:
        self.registration_id = registration_id
        super().__init__(f"Registration {registration_id} does not exist")


class EventNotFound(RollcallError, LookupError):
    def __init__(self, reference: object) -> None:
        self.reference = reference
        super().__init__(f"Event {reference} does not exist")


class ParticipantNotFound(RollcallError, LookupError):
    def __init__(self, reference: object) -> None:
        self.reference = reference
        super().__init__(f"Participant {reference} does not exist")


class RateLimited(RollcallError):
    """The caller exhausted its request budget."""

    def __init__(self, key: str, *, retry_after_seconds: float) -> None:
        self.key = key
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limit exceeded for {key}; retry in {retry_after_seconds:.0f}s")


class EventNotLinked(RollcallError):
    """The event has no registry reference to sync against."""

    def __init__(self, event_id: UUID) -> None:
        self.event_id = event_id
        super().__init__(f"Event {event_id} is not linked to a registry event")


class ParticipantInactive(RollcallError):
    """The participant was deactivated and takes no new registrations."""

    def __init__(self, participant_id: UUID) -> None:
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} is inactive")
