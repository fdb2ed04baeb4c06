"""Reconcile the local store with the external registry roster."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from rollcall.domain.errors import EventNotLinked
from rollcall.domain.identity import require_identifier
from rollcall.domain.model import Origin, utcnow
from rollcall.domain.store import RegistrationStore, UpsertOutcome

if TYPE_CHECKING:
    import threading
    from uuid import UUID

    from rollcall.domain.model import Event
    from rollcall.domain.ports.fetching import RegistryParticipant, RegistryReader
    from rollcall.domain.ports.unit_of_work import UnitOfWorkFactory
    from rollcall.domain.store import Clock

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SyncFailure:
    """A roster entry that was not applied."""

    position: int
    reason: str
    identifier: str | None = None


@dataclass(slots=True)
class SyncResult:
    """Outcome of a registration sync run."""

    event_id: UUID
    external_ref: str
    found: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    cancelled: bool = False
    event_outcome: UpsertOutcome | None = None
    failures: list[SyncFailure] = field(default_factory=list["SyncFailure"])

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.skipped

    def record(self, outcome: UpsertOutcome) -> None:
        match outcome:
            case UpsertOutcome.INSERTED:
                self.inserted += 1
            case UpsertOutcome.UPDATED:
                self.updated += 1
            case UpsertOutcome.SKIPPED:
                self.skipped += 1

    def fail(self, failure: SyncFailure) -> None:
        self.failures.append(failure)
        self.skipped += 1


def import_event(
    external_ref: str,
    *,
    reader: RegistryReader,
    unit_of_work_factory: UnitOfWorkFactory,
    overwrite: bool = False,
    clock: Clock = utcnow,
) -> tuple[Event, UpsertOutcome]:
    """Create the local event for ``external_ref`` or refresh it from the registry."""

    remote = reader.fetch_event(external_ref)
    store = RegistrationStore(unit_of_work_factory, clock=clock)
    event, outcome = store.upsert_external_event(
        remote.external_ref, remote.details, overwrite=overwrite
    )
    log.info("Registry event %s %s as %s", external_ref, outcome, event.id)
    return event, outcome


def sync_registrations(  # noqa: PLR0913
    event_id: UUID,
    *,
    reader: RegistryReader,
    unit_of_work_factory: UnitOfWorkFactory,
    overwrite: bool = False,
    cancel: threading.Event | None = None,
    clock: Clock = utcnow,
) -> SyncResult:
    """Pull the registry roster for an event and upsert it row by row.

    Each row commits on its own, so a failing row or a cancellation leaves the
    rows already applied in place. A failure to fetch the roster itself
    propagates as ``RegistryUnavailable`` before anything is written.
    """

    store = RegistrationStore(unit_of_work_factory, clock=clock)
    event = store.get_event(event_id)
    if event.external_ref is None:
        raise EventNotLinked(event_id)

    roster = reader.fetch_participants(event.external_ref)
    result = SyncResult(event_id=event.id, external_ref=event.external_ref, found=roster.found)
    log.info(
        "Syncing %s registry entries for event %s (overwrite=%s)",
        roster.found,
        event.external_ref,
        overwrite,
    )

    for rejected in roster.rejected:
        log.warning(
            "Skipping unparseable registry entry #%s: %s", rejected.position, rejected.reason
        )
        result.fail(SyncFailure(position=rejected.position, reason=rejected.reason))

    for position, entry in enumerate(roster.participants):
        if cancel is not None and cancel.is_set():
            result.cancelled = True
            log.warning(
                "Sync of event %s cancelled after %s entries", event.external_ref, position
            )
            break
        try:
            outcome = _apply_entry(store, event.id, entry, overwrite=overwrite)
        except Exception as exc:  # noqa: BLE001
            log.warning("Skipping registry entry %r: %s", entry.identifier, exc)
            result.fail(
                SyncFailure(position=position, reason=str(exc), identifier=entry.identifier)
            )
        else:
            result.record(outcome)

    log.info(
        "Finished sync of event %s: found=%s, inserted=%s, updated=%s, skipped=%s, "
        "failures=%s, cancelled=%s",
        event.external_ref,
        result.found,
        result.inserted,
        result.updated,
        result.skipped,
        len(result.failures),
        result.cancelled,
    )
    return result


def _apply_entry(
    store: RegistrationStore,
    event_id: UUID,
    entry: RegistryParticipant,
    *,
    overwrite: bool,
) -> UpsertOutcome:
    identifier = require_identifier(entry.identifier)
    participant, _ = store.ensure_participant(identifier, entry.contact, origin=Origin.EXTERNAL)
    return store.upsert_external_registration(
        participant.id, event_id, entry.contact, overwrite=overwrite
    )
