"""Read-only projection of one effective registration per identity."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from rollcall.domain.anonymize import DEFAULT_MASKED_FIELDS, mask_rows
from rollcall.domain.identity import normalize, require_identifier
from rollcall.domain.model import RegistrationStatus
from rollcall.domain.resolution import RegistrationCandidate, resolve
from rollcall.domain.result import Ok

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from datetime import datetime
    from uuid import UUID

    from rollcall.domain.identity import NormalizedId
    from rollcall.domain.model import Origin
    from rollcall.domain.ports.unit_of_work import UnitOfWorkFactory

EXPORT_COLUMNS: Final[tuple[str, ...]] = (
    "identifier",
    "name",
    "email",
    "phone",
    "company",
    "status",
    "checked_in_at",
    "checked_in_by",
    "origin",
)

type ExportRow = dict[str, str | None]


@dataclass(frozen=True, slots=True)
class EffectiveRegistration:
    identifier: NormalizedId
    participant_id: UUID
    registration_id: UUID
    name: str
    email: str | None
    phone: str | None
    company: str | None
    status: RegistrationStatus
    effective_status: RegistrationStatus
    origin: Origin
    checked_in_at: datetime | None
    checked_in_by: str | None
    duplicates: int = 0


def list_effective_registrations(
    event_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    registry_identifiers: Collection[str] | None = None,
) -> list[EffectiveRegistration]:
    """Collapse an event's registrations to one row per normalized identifier.

    With ``registry_identifiers`` (the current registry roster), people on the
    roster who never confirmed nor checked in are reported as ``no_show``.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        registrations = repositories.registrations.list_for_event(event_id)
        check_ins = {
            check_in.registration_id: check_in.snapshot()
            for check_in in repositories.check_ins.list_for_event(event_id)
        }
        participants = repositories.participants.get_many(
            list(dict.fromkeys(registration.participant_id for registration in registrations))
        )

    roster: set[NormalizedId] | None = None
    if registry_identifiers is not None:
        normalized = (normalize(raw) for raw in registry_identifiers)
        roster = {result.value for result in normalized if isinstance(result, Ok)}

    grouped: defaultdict[NormalizedId, list[RegistrationCandidate]] = defaultdict(list)
    for registration in registrations:
        participant = participants[registration.participant_id]
        grouped[require_identifier(participant.identifier)].append(
            RegistrationCandidate(registration, check_ins.get(registration.id))
        )

    effective: list[EffectiveRegistration] = []
    for identifier, candidates in grouped.items():
        winner = resolve(candidates)
        registration = winner.registration
        participant = participants[registration.participant_id]
        effective.append(
            EffectiveRegistration(
                identifier=identifier,
                participant_id=participant.id,
                registration_id=registration.id,
                name=participant.name,
                email=participant.email,
                phone=participant.phone,
                company=participant.company,
                status=registration.status,
                effective_status=_effective_status(winner, identifier, roster),
                origin=registration.origin,
                checked_in_at=winner.checked_in_at,
                checked_in_by=winner.check_in.operator if winner.check_in is not None else None,
                duplicates=len(candidates) - 1,
            )
        )
    effective.sort(key=lambda row: (row.name.casefold(), row.identifier))
    return effective


def _effective_status(
    winner: RegistrationCandidate,
    identifier: NormalizedId,
    roster: set[NormalizedId] | None,
) -> RegistrationStatus:
    if winner.check_in is not None:
        return RegistrationStatus.CHECKED_IN
    status = winner.registration.status
    if roster is not None and identifier in roster and status is RegistrationStatus.REGISTERED:
        return RegistrationStatus.NO_SHOW
    return status


def to_row(registration: EffectiveRegistration) -> ExportRow:
    return {
        "identifier": registration.identifier,
        "name": registration.name,
        "email": registration.email,
        "phone": registration.phone,
        "company": registration.company,
        "status": registration.effective_status.value,
        "checked_in_at": (
            registration.checked_in_at.isoformat() if registration.checked_in_at else None
        ),
        "checked_in_by": registration.checked_in_by,
        "origin": registration.origin.value,
    }


def export_rows(
    registrations: Iterable[EffectiveRegistration],
    *,
    anonymize: bool = False,
    fields: Iterable[str] = DEFAULT_MASKED_FIELDS,
) -> list[ExportRow]:
    """Flatten effective registrations, masking personal fields when ``anonymize`` is set."""

    rows = [to_row(registration) for registration in registrations]
    if not anonymize:
        return rows
    return mask_rows(rows, fields)
