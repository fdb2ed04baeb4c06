"""Scheduled events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rollcall.domain.model.entity import TimestampedEntity
from rollcall.domain.model.enums import EventStatus

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class EventDetails:
    name: str
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    venue: str | None = None
    capacity: int | None = None
    status: EventStatus = EventStatus.DRAFT


@dataclass(eq=False, kw_only=True)
class Event(TimestampedEntity):
    name: str
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    venue: str | None = None
    capacity: int | None = None
    status: EventStatus = EventStatus.DRAFT
    external_ref: str | None = None

    def update_details(self, details: EventDetails, *, now: datetime) -> bool:
        changed = False
        for attribute in ("name", "starts_at", "ends_at", "venue", "capacity", "status"):
            incoming = getattr(details, attribute)
            if incoming is None or getattr(self, attribute) == incoming:
                continue
            setattr(self, attribute, incoming)
            changed = True
        if changed:
            self.touch(now)
        return changed
