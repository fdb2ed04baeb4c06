"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from rollcall.adapters.sqlalchemy.mappings import (
    check_in_table,
    event_table,
    participant_table,
    registration_table,
)
from rollcall.domain.model import CheckIn, Event, Participant, Registration

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.orm import Session

    from rollcall.domain.identity import NormalizedId
    from rollcall.domain.model import Origin


class SqlAlchemyRepository[TEntity]:
    """Shared ``add``/``get`` for repositories of one mapped entity."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: uuid.UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemyParticipantRepository(SqlAlchemyRepository[Participant]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Participant)

    def get_by_identifier(self, identifier: NormalizedId) -> Participant | None:
        stmt = select(Participant).where(participant_table.c.identifier == identifier)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_many(self, ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, Participant]:
        if not ids:
            return {}
        stmt = select(Participant).where(participant_table.c.id.in_(ids))
        return {participant.id: participant for participant in self.session.scalars(stmt)}


class SqlAlchemyEventRepository(SqlAlchemyRepository[Event]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Event)

    def get_by_external_ref(self, external_ref: str) -> Event | None:
        stmt = select(Event).where(event_table.c.external_ref == external_ref)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyRegistrationRepository(SqlAlchemyRepository[Registration]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Registration)

    def find_for(self, *, participant_id: uuid.UUID, event_id: uuid.UUID) -> list[Registration]:
        stmt = (
            select(Registration)
            .where(registration_table.c.participant_id == participant_id)
            .where(registration_table.c.event_id == event_id)
            .order_by(registration_table.c.created_at, registration_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def get_for_origin(
        self, *, participant_id: uuid.UUID, event_id: uuid.UUID, origin: Origin
    ) -> Registration | None:
        stmt = (
            select(Registration)
            .where(registration_table.c.participant_id == participant_id)
            .where(registration_table.c.event_id == event_id)
            .where(registration_table.c.origin == origin)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_event(self, event_id: uuid.UUID) -> list[Registration]:
        stmt = (
            select(Registration)
            .where(registration_table.c.event_id == event_id)
            .order_by(registration_table.c.created_at, registration_table.c.id)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyCheckInRepository(SqlAlchemyRepository[CheckIn]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, CheckIn)

    def get_for_attendance(
        self, *, participant_id: uuid.UUID, event_id: uuid.UUID
    ) -> CheckIn | None:
        stmt = (
            select(CheckIn)
            .where(check_in_table.c.participant_id == participant_id)
            .where(check_in_table.c.event_id == event_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_event(self, event_id: uuid.UUID) -> list[CheckIn]:
        stmt = (
            select(CheckIn)
            .where(check_in_table.c.event_id == event_id)
            .order_by(check_in_table.c.checked_in_at)
        )
        return list(self.session.scalars(stmt))
