"""Translate registry payloads into domain values."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from rollcall.domain.model import ContactDetails, EventDetails, EventStatus
from rollcall.domain.ports.fetching import RegistryEvent, RegistryParticipant

if TYPE_CHECKING:
    from datetime import tzinfo

    from .schema import EventPayload, ParticipantPayload

AVAILABLE_STATUS: Final[str] = "Disponível"
DEFAULT_EVENT_NAME: Final[str] = "Registry event"
_DATETIME_FORMATS: Final[tuple[str, ...]] = ("%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M", "%d/%m/%Y")


def parse_registry_datetime(value: str | None, *, tz: tzinfo = UTC) -> datetime | None:
    """Parse the registry's ``DD/MM/YYYY HH:MM:SS`` stamps (ISO 8601 also accepted)."""

    if value is None:
        return None
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def parse_participant(payload: ParticipantPayload) -> RegistryParticipant:
    return RegistryParticipant(
        identifier=payload.identifier,
        contact=ContactDetails(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            company=payload.company,
        ),
        registry_status=payload.status,
    )


def parse_event(payload: EventPayload, *, tz: tzinfo = UTC) -> RegistryEvent:
    venue = payload.venue
    if venue and payload.city and payload.city not in venue:
        venue = f"{venue} - {payload.city}"
    return RegistryEvent(
        external_ref=payload.external_ref,
        details=EventDetails(
            name=payload.title or DEFAULT_EVENT_NAME,
            starts_at=parse_registry_datetime(payload.starts_at, tz=tz),
            ends_at=parse_registry_datetime(payload.ends_at, tz=tz),
            venue=venue,
            capacity=payload.capacity or None,
            status=EventStatus.ACTIVE if payload.status == AVAILABLE_STATUS else EventStatus.DRAFT,
        ),
    )
