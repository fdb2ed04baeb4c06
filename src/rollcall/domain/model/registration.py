"""Registrations and the check-in facts attached to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rollcall.domain.model.entity import Entity, TimestampedEntity, utcnow
from rollcall.domain.model.enums import Origin, RegistrationStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Registration(TimestampedEntity):
    """A participant's relationship to one event.

    The store allows one row per (participant, event, origin); rows from
    different origins for the same pair are collapsed at read time.
    """

    participant_id: UUID
    event_id: UUID
    status: RegistrationStatus = RegistrationStatus.REGISTERED
    origin: Origin = Origin.LOCAL
    # row version; storage bumps it on every update and rejects stale writes
    version: int = 1

    def promote_to(self, status: RegistrationStatus, *, now: datetime) -> bool:
        """Move to ``status`` only if it is strictly more advanced."""

        if status.rank <= self.status.rank:
            return False
        self.status = status
        self.touch(now)
        return True

    def mark_checked_in(self, *, now: datetime) -> None:
        if self.status is not RegistrationStatus.CHECKED_IN:
            self.status = RegistrationStatus.CHECKED_IN
            self.touch(now)


@dataclass(eq=False, kw_only=True)
class CheckIn(Entity):
    """Arrival of a registration's holder; at most one per registration and per person+event."""

    registration_id: UUID
    participant_id: UUID
    event_id: UUID
    checked_in_at: datetime = field(default_factory=utcnow)
    operator: str
    note: str | None = None

    def snapshot(self) -> CheckInRecord:
        return CheckInRecord(
            id=self.id,
            registration_id=self.registration_id,
            participant_id=self.participant_id,
            event_id=self.event_id,
            checked_in_at=self.checked_in_at,
            operator=self.operator,
            note=self.note,
        )


@dataclass(frozen=True, slots=True)
class CheckInRecord:
    """Immutable, session-independent copy of a stored check-in."""

    id: UUID
    registration_id: UUID
    participant_id: UUID
    event_id: UUID
    checked_in_at: datetime
    operator: str
    note: str | None
