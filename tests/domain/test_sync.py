from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from rollcall.domain.errors import EventNotFound, EventNotLinked, RegistryUnavailable
from rollcall.domain.model import EventStatus, Origin, RegistrationStatus
from rollcall.domain.ports.fetching import RejectedEntry
from rollcall.domain.store import RegistrationStore, UpsertOutcome
from rollcall.domain.sync import SyncResult, import_event, sync_registrations
from tests.helpers.registry import FakeRegistry, registry_participant
from tests.helpers.store import (
    FakeUnitOfWorkFactory,
    InMemoryDatabase,
    StepClock,
    seed_check_in,
    seed_event,
    seed_participant,
    seed_registration,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

EXTERNAL_REF = "4242"


def _sync(
    event_id: UUID,
    registry: FakeRegistry,
    uow_factory: FakeUnitOfWorkFactory,
    *,
    overwrite: bool = False,
    cancel: threading.Event | None = None,
) -> SyncResult:
    return sync_registrations(
        event_id,
        reader=registry,
        unit_of_work_factory=uow_factory,
        overwrite=overwrite,
        cancel=cancel,
        clock=StepClock(),
    )


def test_sync_inserts_confirmed_external_registrations(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    registry.rosters[EXTERNAL_REF] = [
        registry_participant("123.456.789-01", "Ada Lovelace", email="ada@example.org"),
        registry_participant("98765432100", "Grace Hopper"),
    ]

    result = _sync(event.id, registry, uow_factory)

    assert (result.found, result.inserted, result.updated, result.skipped) == (2, 2, 0, 0)
    assert result.processed == 2
    assert {p.identifier for p in database.participants.values()} == {
        "12345678901",
        "98765432100",
    }
    assert all(p.origin is Origin.EXTERNAL for p in database.participants.values())
    assert all(
        r.status is RegistrationStatus.CONFIRMED and r.origin is Origin.EXTERNAL
        for r in database.registrations.values()
    )


def test_sync_is_idempotent(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    registry.rosters[EXTERNAL_REF] = [registry_participant("12345678901")]

    _sync(event.id, registry, uow_factory)
    second = _sync(event.id, registry, uow_factory)
    third = _sync(event.id, registry, uow_factory, overwrite=True)

    assert (second.inserted, second.updated, second.skipped) == (0, 0, 1)
    assert (third.inserted, third.updated, third.skipped) == (0, 0, 1)
    assert len(database.participants) == 1
    assert len(database.registrations) == 1


def test_sync_merges_with_existing_local_participant(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    local = seed_participant(database, "12345678901", name="Ada L.")
    registry.rosters[EXTERNAL_REF] = [registry_participant("123.456.789-01", "Ada Lovelace")]

    result = _sync(event.id, registry, uow_factory)

    (registration,) = database.registrations.values()
    assert result.inserted == 1
    assert len(database.participants) == 1
    assert registration.participant_id == local.id
    assert database.participants[local.id].name == "Ada L."


def test_sync_never_downgrades_checked_in(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    participant = seed_participant(database, "12345678901")
    registration = seed_registration(database, participant, event, origin=Origin.MANUAL)
    seed_check_in(database, registration)
    registry.rosters[EXTERNAL_REF] = [registry_participant("12345678901", "Renamed")]

    result = _sync(event.id, registry, uow_factory, overwrite=True)

    assert result.skipped == 1
    assert database.registrations[registration.id].status is RegistrationStatus.CHECKED_IN
    assert database.participants[participant.id].name == "Ada Lovelace"
    assert len(database.registrations) == 1


def test_sync_keeps_check_in_committed_between_read_and_write(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    participant = seed_participant(database, "12345678901")
    registration = seed_registration(database, participant, event)
    registry.rosters[EXTERNAL_REF] = [registry_participant("12345678901", "Renamed")]
    desk = RegistrationStore(uow_factory, clock=StepClock())
    sync_clock = StepClock()
    checked_in: list[UUID] = []

    def clock_with_check_in() -> datetime:
        # the desk commits while the sync holds a registration it read as registered
        if not checked_in:
            checked_in.append(desk.insert_check_in(registration.id, operator="desk-1").id)
        return sync_clock()

    result = sync_registrations(
        event.id,
        reader=registry,
        unit_of_work_factory=uow_factory,
        overwrite=True,
        clock=clock_with_check_in,
    )

    assert (result.updated, result.skipped) == (0, 1)
    assert len(checked_in) == 1
    assert database.registrations[registration.id].status is RegistrationStatus.CHECKED_IN
    assert database.participants[participant.id].name == "Ada Lovelace"
    assert len(database.check_ins) == 1


def test_sync_overwrite_promotes_registered_and_refreshes_contact(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    participant = seed_participant(database, "12345678901")
    registration = seed_registration(database, participant, event)
    registry.rosters[EXTERNAL_REF] = [
        registry_participant("12345678901", "Ada Lovelace", email="ada@new.example.org")
    ]

    kept = _sync(event.id, registry, uow_factory)
    updated = _sync(event.id, registry, uow_factory, overwrite=True)

    assert kept.skipped == 1
    assert updated.updated == 1
    assert database.registrations[registration.id].status is RegistrationStatus.CONFIRMED
    assert database.participants[participant.id].email == "ada@new.example.org"


def test_sync_reports_malformed_rows_and_continues(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    registry.rosters[EXTERNAL_REF] = [
        registry_participant("12345678901"),
        registry_participant("1234"),
        registry_participant("98765432100", "Grace Hopper"),
    ]
    registry.rejected[EXTERNAL_REF] = [RejectedEntry(position=3, reason="CPF: Field required")]

    result = _sync(event.id, registry, uow_factory)

    assert result.found == 4
    assert result.inserted == 2
    assert result.skipped == 2
    assert [(f.position, f.identifier) for f in result.failures] == [(3, None), (1, "1234")]
    assert "expected 11 or 14 digits" in result.failures[1].reason
    assert len(database.registrations) == 2


def test_sync_reports_inactive_participants_without_registering_them(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    inactive = seed_participant(database, "12345678901")
    inactive.active = False
    registry.rosters[EXTERNAL_REF] = [
        registry_participant("12345678901"),
        registry_participant("98765432100", "Grace Hopper"),
    ]

    result = _sync(event.id, registry, uow_factory)

    assert (result.inserted, result.skipped) == (1, 1)
    assert [(f.position, f.identifier) for f in result.failures] == [(0, "12345678901")]
    assert "inactive" in result.failures[0].reason
    assert all(r.participant_id != inactive.id for r in database.registrations.values())


def test_sync_stops_when_cancelled(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    registry.rosters[EXTERNAL_REF] = [registry_participant("12345678901")]
    cancel = threading.Event()
    cancel.set()

    result = _sync(event.id, registry, uow_factory, cancel=cancel)

    assert result.cancelled is True
    assert result.processed == 0
    assert not database.registrations


def test_sync_fails_fast_when_registry_unavailable(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=EXTERNAL_REF)
    registry.unavailable = True

    with pytest.raises(RegistryUnavailable):
        _sync(event.id, registry, uow_factory)

    assert uow_factory.commits == 0


def test_sync_requires_linked_event(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database, external_ref=None)

    with pytest.raises(EventNotLinked):
        _sync(event.id, registry, uow_factory)

    assert registry.roster_calls == []


def test_import_event_creates_then_reuses(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    registry.add_event("77", name="Registry meetup")

    event, outcome = import_event("77", reader=registry, unit_of_work_factory=uow_factory)
    again, again_outcome = import_event("77", reader=registry, unit_of_work_factory=uow_factory)

    assert outcome is UpsertOutcome.INSERTED
    assert again_outcome is UpsertOutcome.SKIPPED
    assert again.id == event.id
    assert event.external_ref == "77"
    assert event.status is EventStatus.ACTIVE
    assert len(database.events) == 1


def test_import_event_unknown_reference(
    registry: FakeRegistry, uow_factory: FakeUnitOfWorkFactory
) -> None:
    with pytest.raises(EventNotFound):
        import_event("missing", reader=registry, unit_of_work_factory=uow_factory)
