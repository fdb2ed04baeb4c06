"""Concurrent operators against a file-backed SQLite store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from rollcall.app import check_in, export_rows, register_participant, sync_event, walk_in
from rollcall.domain.checkin import CheckInGuard, CheckInOutcome
from rollcall.domain.identity import NormalizedId
from rollcall.domain.model import (
    CheckIn,
    ContactDetails,
    Event,
    EventStatus,
    Participant,
    Registration,
    RegistrationStatus,
    utcnow,
)
from rollcall.domain.result import Ok
from rollcall.domain.store import RegistrationStore
from rollcall.domain.sync import sync_registrations
from tests.helpers.registry import FakeRegistry, registry_participant

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from rollcall.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork

    UowFactory = Callable[[], SqlAlchemyUnitOfWork]

pytestmark = pytest.mark.integration

OPERATORS = 10


def _seed_registration(uow_factory: UowFactory, *, external_ref: str | None = None) -> Registration:
    participant = Participant(identifier=NormalizedId("12345678901"), name="Ada Lovelace")
    event = Event(name="Founders meetup", status=EventStatus.ACTIVE, external_ref=external_ref)
    registration = Registration(participant_id=participant.id, event_id=event.id)
    with uow_factory() as uow:
        uow.repositories.participants.add(participant)
        uow.commit()
    with uow_factory() as uow:
        uow.repositories.events.add(event)
        uow.commit()
    with uow_factory() as uow:
        uow.repositories.registrations.add(registration)
        uow.commit()
    return registration


def _count(uow_factory: UowFactory, entity: type) -> int:
    with uow_factory() as uow:
        return uow.session.execute(select(func.count()).select_from(entity)).scalar_one()


def _clock_checking_in(uow_factory: UowFactory, registration_id: UUID) -> Callable[[], datetime]:
    """A clock whose first reading lets a front desk commit a check-in from another session."""

    desk = RegistrationStore(uow_factory)
    readings: list[datetime] = []

    def clock() -> datetime:
        if not readings:
            desk.insert_check_in(registration_id, operator="desk-1")
        readings.append(utcnow())
        return readings[-1]

    return clock


def _stored_status(uow_factory: UowFactory, registration_id: UUID) -> RegistrationStatus:
    with uow_factory() as uow:
        stored = uow.repositories.registrations.get(registration_id)
    assert stored is not None
    return stored.status


def _in_parallel(task: Callable[[int], CheckInOutcome]) -> list[CheckInOutcome]:
    barrier = threading.Barrier(OPERATORS)

    def run(index: int) -> CheckInOutcome:
        barrier.wait()
        return task(index)

    with ThreadPoolExecutor(max_workers=OPERATORS) as pool:
        return list(pool.map(run, range(OPERATORS)))


def test_concurrent_check_ins_create_exactly_one(sqlite_unit_of_work: UowFactory) -> None:
    registration = _seed_registration(sqlite_unit_of_work)
    guard = CheckInGuard(RegistrationStore(sqlite_unit_of_work))

    outcomes = _in_parallel(
        lambda index: guard.check_in(registration.id, operator=f"desk-{index}")
    )

    assert sum(outcome.created for outcome in outcomes) == 1
    assert len({outcome.check_in.id for outcome in outcomes}) == 1
    assert _count(sqlite_unit_of_work, CheckIn) == 1
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.registrations.get(registration.id)
    assert stored is not None
    assert stored.status is RegistrationStatus.CHECKED_IN


def test_concurrent_walk_ins_register_one_person(sqlite_unit_of_work: UowFactory) -> None:
    event = Event(name="Open house", status=EventStatus.ACTIVE)
    with sqlite_unit_of_work() as uow:
        uow.repositories.events.add(event)
        uow.commit()
    contact = ContactDetails(name="Grace Hopper", email="grace@example.org")

    def arrive(index: int) -> CheckInOutcome:
        result = walk_in(
            "987.654.321-00",
            event.id,
            contact=contact,
            operator=f"desk-{index}",
            unit_of_work_factory=sqlite_unit_of_work,
        )
        assert isinstance(result, Ok)
        return result.value

    outcomes = _in_parallel(arrive)

    assert sum(outcome.created for outcome in outcomes) == 1
    assert len({outcome.check_in.registration_id for outcome in outcomes}) == 1
    assert _count(sqlite_unit_of_work, Participant) == 1
    assert _count(sqlite_unit_of_work, Registration) == 1
    assert _count(sqlite_unit_of_work, CheckIn) == 1


def test_sync_then_check_in_and_export(sqlite_unit_of_work: UowFactory) -> None:
    registry = FakeRegistry()
    registry.add_event("4242", name="Founders meetup")
    registry.rosters["4242"] = [
        registry_participant("123.456.789-01", "Ada Lovelace", email="ada@example.org"),
        registry_participant("98765432100", "Grace Hopper"),
    ]

    synced = sync_event("4242", reader=registry, unit_of_work_factory=sqlite_unit_of_work)
    assert isinstance(synced, Ok)
    event_id: UUID = synced.value.event_id
    assert synced.value.inserted == 2

    local = register_participant(
        "12345678901",
        event_id,
        contact=ContactDetails(name="Ada Lovelace"),
        unit_of_work_factory=sqlite_unit_of_work,
    )
    assert isinstance(local, Ok)
    checked = check_in(local.value.id, operator="desk-1", unit_of_work_factory=sqlite_unit_of_work)
    assert isinstance(checked, Ok)
    resynced = sync_event("4242", reader=registry, unit_of_work_factory=sqlite_unit_of_work)
    assert isinstance(resynced, Ok)
    assert resynced.value.inserted == 0

    exported = export_rows(event_id, anonymize=True, unit_of_work_factory=sqlite_unit_of_work)

    assert isinstance(exported, Ok)
    assert [(row["identifier"], row["status"]) for row in exported.value] == [
        ("123.***.***-01", "checked_in"),
        ("987.***.***-00", "confirmed"),
    ]
    assert _count(sqlite_unit_of_work, Participant) == 2


def test_sync_overwrite_racing_a_check_in_keeps_it_checked_in(
    sqlite_unit_of_work: UowFactory,
) -> None:
    registration = _seed_registration(sqlite_unit_of_work, external_ref="4242")
    registry = FakeRegistry()
    registry.rosters["4242"] = [registry_participant("12345678901", "Ada L.")]

    result = sync_registrations(
        registration.event_id,
        reader=registry,
        unit_of_work_factory=sqlite_unit_of_work,
        overwrite=True,
        clock=_clock_checking_in(sqlite_unit_of_work, registration.id),
    )

    assert (result.updated, result.skipped, result.failures) == (0, 1, [])
    assert _stored_status(sqlite_unit_of_work, registration.id) is RegistrationStatus.CHECKED_IN
    assert _count(sqlite_unit_of_work, CheckIn) == 1


def test_confirm_racing_a_check_in_keeps_it_checked_in(sqlite_unit_of_work: UowFactory) -> None:
    registration = _seed_registration(sqlite_unit_of_work)
    store = RegistrationStore(
        sqlite_unit_of_work, clock=_clock_checking_in(sqlite_unit_of_work, registration.id)
    )

    confirmed = store.confirm_registration(registration.id)

    assert confirmed.status is RegistrationStatus.CHECKED_IN
    assert _stored_status(sqlite_unit_of_work, registration.id) is RegistrationStatus.CHECKED_IN
