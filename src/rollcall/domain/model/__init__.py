"""Public domain model surface."""

from __future__ import annotations

from rollcall.domain.model.entity import Entity, TimestampedEntity, new_id, utcnow
from rollcall.domain.model.enums import EventStatus, Origin, RegistrationStatus
from rollcall.domain.model.event import Event, EventDetails
from rollcall.domain.model.participant import ContactDetails, Participant
from rollcall.domain.model.registration import CheckIn, CheckInRecord, Registration

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "TimestampedEntity",
    "new_id",
    "utcnow",
    # entities
    "Participant",
    "ContactDetails",
    "Event",
    "EventDetails",
    "Registration",
    "CheckIn",
    "CheckInRecord",
    # enums
    "EventStatus",
    "Origin",
    "RegistrationStatus",
]
