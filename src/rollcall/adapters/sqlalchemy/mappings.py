"""SQLAlchemy mapping metadata for the check-in domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from rollcall.domain.model import (
    CheckIn,
    Event,
    EventStatus,
    Origin,
    Participant,
    Registration,
    RegistrationStatus,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

participant_table = Table(
    "participant",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("identifier", String(14), nullable=False),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("company", String, nullable=True),
    Column("origin", Enum(Origin, native_enum=False), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("identifier", name="uq_participant_identifier"),
)

event_table = Table(
    "event",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("starts_at", UTCDateTime(), nullable=True),
    Column("ends_at", UTCDateTime(), nullable=True),
    Column("venue", String, nullable=True),
    Column("capacity", Integer, nullable=True),
    Column("status", Enum(EventStatus, native_enum=False), nullable=False),
    Column("external_ref", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("external_ref", name="uq_event_external_ref"),
)

# One row per (participant, event, origin): a source never duplicates itself,
# rows from different sources are collapsed by duplicate resolution.
registration_table = Table(
    "registration",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("participant_id", UUIDColumnType, ForeignKey("participant.id"), nullable=False),
    Column("event_id", UUIDColumnType, ForeignKey("event.id"), nullable=False),
    Column("status", Enum(RegistrationStatus, native_enum=False), nullable=False),
    Column("origin", Enum(Origin, native_enum=False), nullable=False),
    Column("version", Integer, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint(
        "participant_id", "event_id", "origin", name="uq_registration_participant_event_origin"
    ),
    Index("ix_registration_event_id", "event_id"),
)

check_in_table = Table(
    "check_in",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("registration_id", UUIDColumnType, ForeignKey("registration.id"), nullable=False),
    Column("participant_id", UUIDColumnType, ForeignKey("participant.id"), nullable=False),
    Column("event_id", UUIDColumnType, ForeignKey("event.id"), nullable=False),
    Column("checked_in_at", UTCDateTime(), nullable=False),
    Column("operator", String, nullable=False),
    Column("note", String, nullable=True),
    UniqueConstraint("registration_id", name="uq_check_in_registration_id"),
    UniqueConstraint("participant_id", "event_id", name="uq_check_in_participant_event"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Participant, participant_table)
    mapper_registry.map_imperatively(Event, event_table)
    # status updates race with check-ins; the version column turns a lost update into StaleDataError
    mapper_registry.map_imperatively(
        Registration, registration_table, version_id_col=registration_table.c.version
    )
    mapper_registry.map_imperatively(CheckIn, check_in_table)

    return mapper_registry
