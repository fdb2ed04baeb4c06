"""Idempotent check-in.

Any number of operators may check the same person in at the same moment.
Exactly one check-in row results and every caller receives it; callers learn
from ``created`` whether theirs was the write that landed.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from rollcall.domain.errors import ConcurrentCheckInDetected, RegistrationNotFound
from rollcall.domain.identity import require_identifier
from rollcall.domain.model import Origin, RegistrationStatus
from rollcall.domain.resolution import RegistrationCandidate, resolve

if TYPE_CHECKING:
    from uuid import UUID

    from rollcall.domain.model import CheckInRecord, ContactDetails, Registration
    from rollcall.domain.store import RegistrationStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckInOutcome:
    created: bool
    check_in: CheckInRecord


@dataclass(slots=True)
class CheckInGuard:
    store: RegistrationStore

    def check_in(
        self,
        registration_id: UUID,
        *,
        operator: str,
        note: str | None = None,
    ) -> CheckInOutcome:
        registration = self.store.get_registration(registration_id)
        existing = self.store.find_check_in(
            participant_id=registration.participant_id, event_id=registration.event_id
        )
        if existing is not None:
            return CheckInOutcome(created=False, check_in=existing)

        try:
            record = self.store.insert_check_in(registration_id, operator=operator, note=note)
        except ConcurrentCheckInDetected:
            log.info(
                "Registration %s was checked in concurrently; returning the stored check-in",
                registration_id,
            )
        else:
            log.info("Checked in registration %s (operator=%s)", registration_id, operator)
            return CheckInOutcome(created=True, check_in=record)

        winner = self.store.find_check_in(
            participant_id=registration.participant_id, event_id=registration.event_id
        )
        if winner is None:
            raise RegistrationNotFound(registration_id)
        return CheckInOutcome(created=False, check_in=winner)

    def walk_in(  # noqa: PLR0913
        self,
        identifier: str,
        event_id: UUID,
        *,
        contact: ContactDetails,
        operator: str,
        note: str | None = None,
    ) -> CheckInOutcome:
        """Check in a person who may not be registered yet.

        Raises ``InvalidIdentityFormat`` for a malformed identifier,
        ``EventNotFound`` for an unknown event and ``ParticipantInactive`` when a
        deactivated person has no registration to check in with.
        """

        normalized = require_identifier(identifier)
        self.store.get_event(event_id)
        participant, created = self.store.ensure_participant(
            normalized, contact, origin=Origin.MANUAL
        )
        if created:
            log.info("Registered walk-in participant %s", participant.id)
        registration = self._attendance_registration(participant.id, event_id)
        return self.check_in(registration.id, operator=operator, note=note)

    def _attendance_registration(self, participant_id: UUID, event_id: UUID) -> Registration:
        existing = self.store.registrations_for(participant_id, event_id)
        if existing:
            winner = resolve([RegistrationCandidate(registration) for registration in existing])
            registration = winner.registration
            if registration.status.rank < RegistrationStatus.CONFIRMED.rank:
                registration = self.store.confirm_registration(registration.id)
            return registration
        registration, _ = self.store.ensure_registration(
            participant_id, event_id, origin=Origin.MANUAL, status=RegistrationStatus.CONFIRMED
        )
        return registration
