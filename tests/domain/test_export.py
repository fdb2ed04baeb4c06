from __future__ import annotations

from datetime import timedelta

from rollcall.domain.export import EXPORT_COLUMNS, export_rows, list_effective_registrations
from rollcall.domain.model import Origin, RegistrationStatus
from tests.helpers.store import (
    BASE_TIME,
    FakeUnitOfWorkFactory,
    InMemoryDatabase,
    seed_check_in,
    seed_event,
    seed_participant,
    seed_registration,
)


def test_duplicates_collapse_to_checked_in_row(
    uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database)
    ada = seed_participant(database, "12345678901", name="Ada Lovelace")
    seed_registration(
        database,
        ada,
        event,
        status=RegistrationStatus.CONFIRMED,
        origin=Origin.EXTERNAL,
        at=BASE_TIME + timedelta(hours=1),
    )
    walk_in = seed_registration(database, ada, event, origin=Origin.MANUAL)
    seed_check_in(database, walk_in, operator="desk-3", at=BASE_TIME + timedelta(hours=2))

    (row,) = list_effective_registrations(event.id, unit_of_work_factory=uow_factory)

    assert row.registration_id == walk_in.id
    assert row.effective_status is RegistrationStatus.CHECKED_IN
    assert row.checked_in_by == "desk-3"
    assert row.checked_in_at == BASE_TIME + timedelta(hours=2)
    assert row.duplicates == 1


def test_rows_are_sorted_by_name_and_scoped_to_event(
    uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database)
    other_event = seed_event(database, name="Other", external_ref="9")
    grace = seed_participant(database, "98765432100", name="grace Hopper")
    ada = seed_participant(database, "12345678901", name="Ada Lovelace")
    seed_registration(database, grace, event)
    seed_registration(database, ada, event)
    seed_registration(database, ada, other_event)

    rows = list_effective_registrations(event.id, unit_of_work_factory=uow_factory)

    assert [row.name for row in rows] == ["Ada Lovelace", "grace Hopper"]
    assert all(row.duplicates == 0 for row in rows)


def test_registry_roster_marks_unconfirmed_as_no_show(
    uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database)
    ada = seed_participant(database, "12345678901", name="Ada Lovelace")
    grace = seed_participant(database, "98765432100", name="Grace Hopper")
    seed_registration(database, ada, event)
    seed_registration(database, grace, event, status=RegistrationStatus.CONFIRMED)

    rows = list_effective_registrations(
        event.id,
        unit_of_work_factory=uow_factory,
        registry_identifiers=["123.456.789-01", "987.654.321-00", "not-an-id"],
    )
    without_roster = list_effective_registrations(event.id, unit_of_work_factory=uow_factory)

    assert [row.effective_status for row in rows] == [
        RegistrationStatus.NO_SHOW,
        RegistrationStatus.CONFIRMED,
    ]
    assert rows[0].status is RegistrationStatus.REGISTERED
    assert without_roster[0].effective_status is RegistrationStatus.REGISTERED


def test_export_rows_plain_and_anonymized(
    uow_factory: FakeUnitOfWorkFactory, database: InMemoryDatabase
) -> None:
    event = seed_event(database)
    ada = seed_participant(database, "12345678901", name="Ada Lovelace")
    ada.email = "ada@example.org"
    registration = seed_registration(database, ada, event)
    seed_check_in(database, registration, at=BASE_TIME)
    effective = list_effective_registrations(event.id, unit_of_work_factory=uow_factory)

    (plain,) = export_rows(effective)
    (masked,) = export_rows(effective, anonymize=True)

    assert tuple(plain) == EXPORT_COLUMNS
    assert plain["identifier"] == "12345678901"
    assert plain["status"] == "checked_in"
    assert plain["checked_in_at"] == BASE_TIME.isoformat()
    assert plain["phone"] is None
    assert masked["identifier"] == "123.***.***-01"
    assert masked["name"] == "A**********e"
    assert masked["email"] == "a**@example.org"
    assert masked["phone"] is None
    assert masked["status"] == "checked_in"
    assert masked["checked_in_by"] == "desk-1"
