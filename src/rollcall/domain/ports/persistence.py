"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rollcall.domain.model import CheckIn, Event, Participant, Registration

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from rollcall.domain.identity import NormalizedId
    from rollcall.domain.model import Origin


class UniqueViolation(Exception):  # noqa: N818
    """Raised on commit when a write collides with a uniqueness constraint."""


class StaleWrite(Exception):  # noqa: N818
    """Raised on commit when a row changed since this unit of work read it."""


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: UUID) -> TEntity | None: ...


@runtime_checkable
class ParticipantRepository(Repository[Participant], Protocol):
    def get_by_identifier(self, identifier: NormalizedId) -> Participant | None: ...

    def get_many(self, ids: Sequence[UUID]) -> dict[UUID, Participant]: ...


@runtime_checkable
class EventRepository(Repository[Event], Protocol):
    def get_by_external_ref(self, external_ref: str) -> Event | None: ...


@runtime_checkable
class RegistrationRepository(Repository[Registration], Protocol):
    def find_for(self, *, participant_id: UUID, event_id: UUID) -> list[Registration]: ...

    def get_for_origin(
        self, *, participant_id: UUID, event_id: UUID, origin: Origin
    ) -> Registration | None: ...

    def list_for_event(self, event_id: UUID) -> list[Registration]: ...


@runtime_checkable
class CheckInRepository(Repository[CheckIn], Protocol):
    def get_for_attendance(self, *, participant_id: UUID, event_id: UUID) -> CheckIn | None: ...

    def list_for_event(self, event_id: UUID) -> list[CheckIn]: ...
