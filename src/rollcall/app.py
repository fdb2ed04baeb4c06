"""Application entry points.

Every function here wires the default adapters when none are injected and
reports expected failures as :class:`~rollcall.domain.result.Err` values.
Unexpected errors (storage outages, programming errors) still raise.
"""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from rollcall.adapters.registry import RegistryClient
from rollcall.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, ensure_started
from rollcall.config import get_sync_config
from rollcall.domain.checkin import CheckInGuard, CheckInOutcome
from rollcall.domain.errors import (
    EventNotFound,
    EventNotLinked,
    InvalidIdentityFormat,
    ParticipantInactive,
    ParticipantNotFound,
    RateLimited,
    RegistrationNotFound,
    RegistryUnavailable,
)
from rollcall.domain.export import EffectiveRegistration, ExportRow
from rollcall.domain.export import export_rows as project_rows
from rollcall.domain.export import list_effective_registrations as project_registrations
from rollcall.domain.identity import normalize, same_identity
from rollcall.domain.model import Origin, RegistrationStatus, utcnow
from rollcall.domain.result import Err, Ok, Result
from rollcall.domain.store import RegistrationStore
from rollcall.domain.sync import SyncResult, import_event
from rollcall.domain.sync import sync_registrations as run_registration_sync

if TYPE_CHECKING:
    import threading
    from uuid import UUID

    from rollcall.domain.model import (
        ContactDetails,
        Event,
        EventDetails,
        Participant,
        Registration,
    )
    from rollcall.domain.ports.fetching import RegistryReader, RegistryWriter
    from rollcall.domain.ports.unit_of_work import UnitOfWorkFactory
    from rollcall.domain.rate_limit import TokenBucketLimiter
    from rollcall.domain.store import Clock

log = getLogger(__name__)


class PublishOutcome(StrEnum):
    PUBLISHED = "published"
    ALREADY_REGISTERED = "already_registered"


def _unit_of_work(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    ensure_started()
    return SqlAlchemyUnitOfWork


def _throttle(limiter: TokenBucketLimiter | None, operator: str) -> Err[RateLimited] | None:
    if limiter is None or limiter.acquire(operator):
        return None
    error = RateLimited(operator, retry_after_seconds=limiter.retry_after(operator))
    log.warning("%s", error)
    return Err(error)


def check_in(  # noqa: PLR0913
    registration_id: UUID,
    *,
    operator: str,
    note: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    limiter: TokenBucketLimiter | None = None,
    clock: Clock = utcnow,
) -> Result[CheckInOutcome, RegistrationNotFound | RateLimited]:
    """Check a registration in; repeated or concurrent calls return the same check-in."""

    if (throttled := _throttle(limiter, operator)) is not None:
        return throttled
    guard = CheckInGuard(RegistrationStore(_unit_of_work(unit_of_work_factory), clock=clock))
    try:
        return Ok(guard.check_in(registration_id, operator=operator, note=note))
    except RegistrationNotFound as exc:
        log.warning("Check-in rejected: %s", exc)
        return Err(exc)


def walk_in(  # noqa: PLR0913
    identifier: str,
    event_id: UUID,
    *,
    contact: ContactDetails,
    operator: str,
    note: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    limiter: TokenBucketLimiter | None = None,
    clock: Clock = utcnow,
) -> Result[
    CheckInOutcome, InvalidIdentityFormat | EventNotFound | ParticipantInactive | RateLimited
]:
    """Register (if needed) and check in a person who arrived without a registration."""

    if (throttled := _throttle(limiter, operator)) is not None:
        return throttled
    guard = CheckInGuard(RegistrationStore(_unit_of_work(unit_of_work_factory), clock=clock))
    try:
        outcome = guard.walk_in(
            identifier, event_id, contact=contact, operator=operator, note=note
        )
    except (InvalidIdentityFormat, EventNotFound, ParticipantInactive) as exc:
        log.warning("Walk-in rejected: %s", exc)
        return Err(exc)
    return Ok(outcome)


def create_event(
    details: EventDetails,
    *,
    external_ref: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[Event, EventNotFound]:
    """Create a local event; an already imported ``external_ref`` returns the stored event."""

    store = RegistrationStore(_unit_of_work(unit_of_work_factory))
    if external_ref is None:
        event = store.create_event(details)
    else:
        try:
            event, _ = store.upsert_external_event(external_ref, details, overwrite=False)
        except EventNotFound as exc:
            return Err(exc)
    log.info("Created event %s (%s)", event.id, event.name)
    return Ok(event)


def register_participant(
    identifier: str,
    event_id: UUID,
    *,
    contact: ContactDetails,
    status: RegistrationStatus = RegistrationStatus.REGISTERED,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[Registration, InvalidIdentityFormat | EventNotFound | ParticipantInactive]:
    """Record a locally entered registration."""

    normalized = normalize(identifier)
    if isinstance(normalized, Err):
        return normalized
    store = RegistrationStore(_unit_of_work(unit_of_work_factory))
    try:
        store.get_event(event_id)
    except EventNotFound as exc:
        return Err(exc)
    participant, _ = store.ensure_participant(normalized.value, contact, origin=Origin.LOCAL)
    try:
        registration, created = store.ensure_registration(
            participant.id, event_id, origin=Origin.LOCAL, status=status
        )
    except ParticipantInactive as exc:
        log.warning("Registration rejected: %s", exc)
        return Err(exc)
    if created:
        log.info("Registered participant %s for event %s", participant.id, event_id)
    return Ok(registration)


def deactivate_participant(
    participant_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[Participant, ParticipantNotFound]:
    """Stop accepting new registrations for a participant. Existing ones stay."""

    store = RegistrationStore(_unit_of_work(unit_of_work_factory))
    try:
        return Ok(store.deactivate_participant(participant_id))
    except ParticipantNotFound as exc:
        return Err(exc)


def sync_registrations(
    event_id: UUID,
    *,
    overwrite: bool | None = None,
    reader: RegistryReader | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    cancel: threading.Event | None = None,
) -> Result[SyncResult, RegistryUnavailable | EventNotFound | EventNotLinked]:
    """Pull the registry roster for a local event into the store."""

    effective_overwrite = get_sync_config().overwrite if overwrite is None else overwrite
    effective_uow = _unit_of_work(unit_of_work_factory)
    log.info("Starting registry sync: event=%s, overwrite=%s", event_id, effective_overwrite)
    try:
        result = run_registration_sync(
            event_id,
            reader=reader or RegistryClient(),
            unit_of_work_factory=effective_uow,
            overwrite=effective_overwrite,
            cancel=cancel,
        )
    except (RegistryUnavailable, EventNotFound, EventNotLinked) as exc:
        log.error("Registry sync failed: %s", exc)
        return Err(exc)
    return Ok(result)


def sync_event(
    external_ref: str,
    *,
    overwrite: bool | None = None,
    reader: RegistryReader | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    cancel: threading.Event | None = None,
) -> Result[SyncResult, RegistryUnavailable | EventNotFound | EventNotLinked]:
    """Import (or refresh) a registry event, then sync its roster."""

    effective_overwrite = get_sync_config().overwrite if overwrite is None else overwrite
    effective_reader = reader or RegistryClient()
    effective_uow = _unit_of_work(unit_of_work_factory)
    try:
        event, outcome = import_event(
            external_ref,
            reader=effective_reader,
            unit_of_work_factory=effective_uow,
            overwrite=effective_overwrite,
        )
    except (RegistryUnavailable, EventNotFound) as exc:
        log.error("Importing registry event %s failed: %s", external_ref, exc)
        return Err(exc)

    synced = sync_registrations(
        event.id,
        overwrite=effective_overwrite,
        reader=effective_reader,
        unit_of_work_factory=effective_uow,
        cancel=cancel,
    )
    if isinstance(synced, Ok):
        synced.value.event_outcome = outcome
    return synced


def list_effective_registrations(
    event_id: UUID,
    *,
    include_registry_roster: bool = False,
    reader: RegistryReader | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[list[EffectiveRegistration], EventNotFound | RegistryUnavailable]:
    """One effective registration per identity for an event.

    With ``include_registry_roster`` the registry is consulted so that people
    on its roster who never confirmed are reported as ``no_show``.
    """

    effective_uow = _unit_of_work(unit_of_work_factory)
    store = RegistrationStore(effective_uow)
    try:
        event = store.get_event(event_id)
    except EventNotFound as exc:
        return Err(exc)

    registry_identifiers: list[str] | None = None
    if include_registry_roster and event.external_ref is not None:
        try:
            roster = (reader or RegistryClient()).fetch_participants(event.external_ref)
        except RegistryUnavailable as exc:
            log.error("Could not load registry roster for %s: %s", event.external_ref, exc)
            return Err(exc)
        registry_identifiers = [entry.identifier for entry in roster.participants]

    return Ok(
        project_registrations(
            event.id,
            unit_of_work_factory=effective_uow,
            registry_identifiers=registry_identifiers,
        )
    )


def export_rows(
    event_id: UUID,
    *,
    anonymize: bool = False,
    include_registry_roster: bool = False,
    reader: RegistryReader | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[list[ExportRow], EventNotFound | RegistryUnavailable]:
    """Flat export rows for an event, personal fields masked when ``anonymize`` is set."""

    listed = list_effective_registrations(
        event_id,
        include_registry_roster=include_registry_roster,
        reader=reader,
        unit_of_work_factory=unit_of_work_factory,
    )
    if isinstance(listed, Err):
        return listed
    rows = project_rows(listed.value, anonymize=anonymize)
    log.info("Exported %s rows for event %s (anonymized=%s)", len(rows), event_id, anonymize)
    return Ok(rows)


def publish_participant(  # noqa: PLR0913
    participant_id: UUID,
    event_id: UUID,
    *,
    force: bool = False,
    reader: RegistryReader | None = None,
    writer: RegistryWriter | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Result[
    PublishOutcome, RegistryUnavailable | ParticipantNotFound | EventNotFound | EventNotLinked
]:
    """Push a locally known participant to the registry. Never affects local state.

    The registry roster is checked first and a participant it already lists is
    not sent again unless ``force`` is set. When the roster cannot be read the
    participant is treated as unknown and published.
    """

    store = RegistrationStore(_unit_of_work(unit_of_work_factory))
    try:
        participant = store.get_participant(participant_id)
        event = store.get_event(event_id)
    except (ParticipantNotFound, EventNotFound) as exc:
        return Err(exc)
    if event.external_ref is None:
        return Err(EventNotLinked(event.id))
    if reader is None or writer is None:
        client = RegistryClient()
        reader = reader or client
        writer = writer or client

    if not force and _listed_in_registry(reader, event.external_ref, participant):
        log.info(
            "Participant %s is already registered in registry event %s",
            participant_id,
            event.external_ref,
        )
        return Ok(PublishOutcome.ALREADY_REGISTERED)
    try:
        writer.publish_participant(event.external_ref, participant)
    except RegistryUnavailable as exc:
        log.warning("Registry write for participant %s failed: %s", participant_id, exc)
        return Err(exc)
    log.info("Published participant %s to registry event %s", participant_id, event.external_ref)
    return Ok(PublishOutcome.PUBLISHED)


def _listed_in_registry(
    reader: RegistryReader, external_ref: str, participant: Participant
) -> bool:
    try:
        roster = reader.fetch_participants(external_ref)
    except RegistryUnavailable as exc:
        log.warning("Could not check registry roster for %s: %s", external_ref, exc)
        return False
    return any(
        same_identity(entry.identifier, participant.identifier) for entry in roster.participants
    )
