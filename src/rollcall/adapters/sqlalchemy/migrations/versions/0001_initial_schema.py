"""Initial schema: participants, events, registrations and check-ins.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from rollcall.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_ORIGINS = ("EXTERNAL", "LOCAL", "MANUAL")
_EVENT_STATUSES = ("DRAFT", "ACTIVE", "FINISHED", "CANCELLED")
_REGISTRATION_STATUSES = ("REGISTERED", "CONFIRMED", "CHECKED_IN", "CANCELLED", "NO_SHOW")


def _enum(*names: str, name: str) -> sa.Enum:
    return sa.Enum(*names, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "participant",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("identifier", sa.String(length=14), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("origin", _enum(*_ORIGINS, name="origin"), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_participant"),
        sa.UniqueConstraint("identifier", name="uq_participant_identifier"),
    )
    op.create_table(
        "event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("starts_at", UTCDateTime(), nullable=True),
        sa.Column("ends_at", UTCDateTime(), nullable=True),
        sa.Column("venue", sa.String(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("status", _enum(*_EVENT_STATUSES, name="eventstatus"), nullable=False),
        sa.Column("external_ref", sa.String(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_event"),
        sa.UniqueConstraint("external_ref", name="uq_event_external_ref"),
    )
    op.create_table(
        "registration",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("participant_id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status", _enum(*_REGISTRATION_STATUSES, name="registrationstatus"), nullable=False
        ),
        sa.Column("origin", _enum(*_ORIGINS, name="origin"), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participant.id"],
            name="fk_registration_participant_id_participant",
        ),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"], name="fk_registration_event_id_event"),
        sa.PrimaryKeyConstraint("id", name="pk_registration"),
        sa.UniqueConstraint(
            "participant_id",
            "event_id",
            "origin",
            name="uq_registration_participant_event_origin",
        ),
    )
    op.create_index("ix_registration_event_id", "registration", ["event_id"])
    op.create_table(
        "check_in",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("registration_id", sa.Uuid(), nullable=False),
        sa.Column("participant_id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("checked_in_at", UTCDateTime(), nullable=False),
        sa.Column("operator", sa.String(), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(
            ["registration_id"],
            ["registration.id"],
            name="fk_check_in_registration_id_registration",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"], ["participant.id"], name="fk_check_in_participant_id_participant"
        ),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"], name="fk_check_in_event_id_event"),
        sa.PrimaryKeyConstraint("id", name="pk_check_in"),
        sa.UniqueConstraint("registration_id", name="uq_check_in_registration_id"),
        sa.UniqueConstraint("participant_id", "event_id", name="uq_check_in_participant_event"),
    )


def downgrade() -> None:
    op.drop_table("check_in")
    op.drop_index("ix_registration_event_id", table_name="registration")
    op.drop_table("registration")
    op.drop_table("event")
    op.drop_table("participant")
