"""Registration store: the only writer of participants, registrations and check-ins.

Every mutating operation is a single conditional write. Collisions with the
storage uniqueness constraints are converted into a re-read of the row the
competing writer committed, and registration updates that went stale against
the row version are applied again to the fresh row, so callers never see a
storage race.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from rollcall.domain.errors import (
    ConcurrentCheckInDetected,
    EventNotFound,
    ParticipantInactive,
    ParticipantNotFound,
    RegistrationNotFound,
)
from rollcall.domain.model import (
    CheckIn,
    Event,
    Origin,
    Participant,
    Registration,
    RegistrationStatus,
    utcnow,
)
from rollcall.domain.ports.persistence import StaleWrite, UniqueViolation

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from rollcall.domain.identity import NormalizedId
    from rollcall.domain.model import CheckInRecord, ContactDetails, EventDetails
    from rollcall.domain.ports.unit_of_work import CheckInRepositories, UnitOfWorkFactory

Clock = Callable[[], "datetime"]

STALE_WRITE_ATTEMPTS = 3

log = getLogger(__name__)


class UpsertOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(slots=True)
class RegistrationStore:
    unit_of_work_factory: UnitOfWorkFactory
    clock: Clock = utcnow

    # Reads -------------------------------------------------------------------

    def get_event(self, event_id: UUID) -> Event:
        with self.unit_of_work_factory() as uow:
            event = uow.repositories.events.get(event_id)
        if event is None:
            raise EventNotFound(event_id)
        return event

    def get_participant(self, participant_id: UUID) -> Participant:
        with self.unit_of_work_factory() as uow:
            participant = uow.repositories.participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFound(participant_id)
        return participant

    def get_registration(self, registration_id: UUID) -> Registration:
        with self.unit_of_work_factory() as uow:
            registration = uow.repositories.registrations.get(registration_id)
        if registration is None:
            raise RegistrationNotFound(registration_id)
        return registration

    def find_check_in(self, *, participant_id: UUID, event_id: UUID) -> CheckInRecord | None:
        with self.unit_of_work_factory() as uow:
            existing = uow.repositories.check_ins.get_for_attendance(
                participant_id=participant_id, event_id=event_id
            )
            return existing.snapshot() if existing is not None else None

    # Events ------------------------------------------------------------------

    def create_event(self, details: EventDetails, *, external_ref: str | None = None) -> Event:
        now = self.clock()
        event = Event(
            name=details.name,
            starts_at=details.starts_at,
            ends_at=details.ends_at,
            venue=details.venue,
            capacity=details.capacity,
            status=details.status,
            external_ref=external_ref,
            created_at=now,
            updated_at=now,
        )
        with self.unit_of_work_factory() as uow:
            uow.repositories.events.add(event)
            uow.commit()
        return event

    def upsert_external_event(
        self, external_ref: str, details: EventDetails, *, overwrite: bool
    ) -> tuple[Event, UpsertOutcome]:
        with self.unit_of_work_factory() as uow:
            existing = uow.repositories.events.get_by_external_ref(external_ref)
            if existing is not None:
                if overwrite and existing.update_details(details, now=self.clock()):
                    uow.commit()
                    return existing, UpsertOutcome.UPDATED
                return existing, UpsertOutcome.SKIPPED
        try:
            return self.create_event(details, external_ref=external_ref), UpsertOutcome.INSERTED
        except UniqueViolation:
            log.info("Event %s was imported concurrently; reusing it", external_ref)
        with self.unit_of_work_factory() as uow:
            winner = uow.repositories.events.get_by_external_ref(external_ref)
        if winner is None:
            raise EventNotFound(external_ref)
        return winner, UpsertOutcome.SKIPPED

    # Participants ------------------------------------------------------------

    def ensure_participant(
        self,
        identifier: NormalizedId,
        contact: ContactDetails,
        *,
        origin: Origin,
    ) -> tuple[Participant, bool]:
        """Return the participant for ``identifier``, creating it on first sighting."""

        with self.unit_of_work_factory() as uow:
            existing = uow.repositories.participants.get_by_identifier(identifier)
            if existing is not None:
                return existing, False
            now = self.clock()
            participant = Participant(
                identifier=identifier,
                name=contact.name,
                email=contact.email,
                phone=contact.phone,
                company=contact.company,
                origin=origin,
                created_at=now,
                updated_at=now,
            )
            uow.repositories.participants.add(participant)
            try:
                uow.commit()
            except UniqueViolation:
                log.debug("Participant %s created concurrently", identifier)
            else:
                return participant, True

        with self.unit_of_work_factory() as uow:
            winner = uow.repositories.participants.get_by_identifier(identifier)
        if winner is None:
            raise ParticipantNotFound(identifier)
        return winner, False

    def deactivate_participant(self, participant_id: UUID) -> Participant:
        """Hide a participant from new registrations; existing ones are kept."""

        with self.unit_of_work_factory() as uow:
            participant = uow.repositories.participants.get(participant_id)
            if participant is None:
                raise ParticipantNotFound(participant_id)
            if participant.active:
                participant.deactivate(now=self.clock())
                uow.commit()
                log.info("Deactivated participant %s", participant_id)
            return participant

    # Registrations -----------------------------------------------------------

    def ensure_registration(
        self,
        participant_id: UUID,
        event_id: UUID,
        *,
        origin: Origin,
        status: RegistrationStatus = RegistrationStatus.CONFIRMED,
    ) -> tuple[Registration, bool]:
        """Get or create the registration row owned by ``origin`` for the pair."""

        with self.unit_of_work_factory() as uow:
            registrations = uow.repositories.registrations
            existing = registrations.get_for_origin(
                participant_id=participant_id, event_id=event_id, origin=origin
            )
            if existing is not None:
                return existing, False
            _require_active(uow.repositories, participant_id)
            registration = self._new_registration(participant_id, event_id, origin, status)
            registrations.add(registration)
            try:
                uow.commit()
            except UniqueViolation:
                log.debug(
                    "Registration for participant %s / event %s created concurrently",
                    participant_id,
                    event_id,
                )
            else:
                return registration, True

        with self.unit_of_work_factory() as uow:
            winner = uow.repositories.registrations.get_for_origin(
                participant_id=participant_id, event_id=event_id, origin=origin
            )
        if winner is None:
            raise RegistrationNotFound(participant_id)
        return winner, False

    def registrations_for(self, participant_id: UUID, event_id: UUID) -> list[Registration]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.registrations.find_for(
                participant_id=participant_id, event_id=event_id
            )

    def confirm_registration(self, registration_id: UUID) -> Registration:
        """Raise a registration to at least ``confirmed``."""

        return self._retry_stale(
            lambda: self._confirm_registration(registration_id), subject=registration_id
        )

    def _confirm_registration(self, registration_id: UUID) -> Registration:
        with self.unit_of_work_factory() as uow:
            registration = uow.repositories.registrations.get(registration_id)
            if registration is None:
                raise RegistrationNotFound(registration_id)
            if registration.promote_to(RegistrationStatus.CONFIRMED, now=self.clock()):
                uow.commit()
            return registration

    def upsert_external_registration(
        self,
        participant_id: UUID,
        event_id: UUID,
        contact: ContactDetails,
        *,
        overwrite: bool,
    ) -> UpsertOutcome:
        """Apply one registry roster entry to the local store.

        Checked-in attendance is never modified. With ``overwrite`` the
        participant's contact fields are refreshed and ``registered`` rows are
        promoted to ``confirmed``; nothing is ever downgraded. A check-in that
        commits between the read and the write makes the write stale, and the
        entry is applied again against the fresh state.
        """

        return self._retry_stale(
            lambda: self._apply_external_registration(
                participant_id, event_id, contact, overwrite=overwrite
            ),
            subject=participant_id,
        )

    def _apply_external_registration(
        self,
        participant_id: UUID,
        event_id: UUID,
        contact: ContactDetails,
        *,
        overwrite: bool,
    ) -> UpsertOutcome:
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            current = repositories.registrations.find_for(
                participant_id=participant_id, event_id=event_id
            )
            if not current:
                _require_active(repositories, participant_id)
                registration = self._new_registration(
                    participant_id, event_id, Origin.EXTERNAL, RegistrationStatus.CONFIRMED
                )
                repositories.registrations.add(registration)
                try:
                    uow.commit()
                except UniqueViolation:
                    log.info(
                        "Registration for participant %s was inserted by a concurrent sync",
                        participant_id,
                    )
                    return UpsertOutcome.SKIPPED
                return UpsertOutcome.INSERTED

            checked_in = repositories.check_ins.get_for_attendance(
                participant_id=participant_id, event_id=event_id
            )
            if checked_in is not None or not overwrite:
                return UpsertOutcome.SKIPPED

            now = self.clock()
            participant = repositories.participants.get(participant_id)
            if participant is None:
                raise ParticipantNotFound(participant_id)
            changed = participant.update_contact(contact, now=now)
            for registration in current:
                if registration.status is RegistrationStatus.REGISTERED:
                    promoted = registration.promote_to(RegistrationStatus.CONFIRMED, now=now)
                    changed = promoted or changed
            if not changed:
                return UpsertOutcome.SKIPPED
            uow.commit()
            return UpsertOutcome.UPDATED

    # Check-ins ---------------------------------------------------------------

    def insert_check_in(
        self,
        registration_id: UUID,
        *,
        operator: str,
        note: str | None = None,
    ) -> CheckInRecord:
        """Create the check-in for ``registration_id`` and mark it ``checked_in``.

        Raises :class:`ConcurrentCheckInDetected` when the registration, or any
        other registration of the same person for the same event, already has one.
        """

        return self._retry_stale(
            lambda: self._insert_check_in(registration_id, operator=operator, note=note),
            subject=registration_id,
        )

    def _insert_check_in(
        self,
        registration_id: UUID,
        *,
        operator: str,
        note: str | None,
    ) -> CheckInRecord:
        with self.unit_of_work_factory() as uow:
            registration = uow.repositories.registrations.get(registration_id)
            if registration is None:
                raise RegistrationNotFound(registration_id)
            now = self.clock()
            check_in = CheckIn(
                registration_id=registration.id,
                participant_id=registration.participant_id,
                event_id=registration.event_id,
                checked_in_at=now,
                operator=operator,
                note=note,
            )
            uow.repositories.check_ins.add(check_in)
            registration.mark_checked_in(now=now)
            try:
                uow.commit()
            except UniqueViolation as exc:
                raise ConcurrentCheckInDetected(registration_id) from exc
            return check_in.snapshot()

    def _retry_stale[T](self, write: Callable[[], T], *, subject: UUID) -> T:
        """Run ``write`` again on a fresh read while concurrent updates make it stale."""

        for attempt in range(1, STALE_WRITE_ATTEMPTS):
            try:
                return write()
            except StaleWrite:
                log.info(
                    "Write for %s went stale, re-reading (attempt %s)",
                    subject,
                    attempt,
                )
        return write()

    def _new_registration(
        self,
        participant_id: UUID,
        event_id: UUID,
        origin: Origin,
        status: RegistrationStatus,
    ) -> Registration:
        now = self.clock()
        return Registration(
            participant_id=participant_id,
            event_id=event_id,
            status=status,
            origin=origin,
            created_at=now,
            updated_at=now,
        )


def _require_active(repositories: CheckInRepositories, participant_id: UUID) -> None:
    participant = repositories.participants.get(participant_id)
    if participant is None:
        raise ParticipantNotFound(participant_id)
    if not participant.active:
        raise ParticipantInactive(participant_id)
