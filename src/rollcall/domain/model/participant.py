"""Participant identity records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rollcall.domain.model.entity import TimestampedEntity
from rollcall.domain.model.enums import Origin

if TYPE_CHECKING:
    from datetime import datetime

    from rollcall.domain.identity import NormalizedId


@dataclass(frozen=True, slots=True)
class ContactDetails:
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None


@dataclass(eq=False, kw_only=True)
class Participant(TimestampedEntity):
    """A person (or company) keyed by its normalized national identifier.

    ``identifier`` is assigned once and never rewritten. Participants are never
    deleted; :meth:`deactivate` hides them from new registrations instead.
    """

    identifier: NormalizedId
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    origin: Origin = Origin.LOCAL
    active: bool = True

    @property
    def contact(self) -> ContactDetails:
        return ContactDetails(
            name=self.name, email=self.email, phone=self.phone, company=self.company
        )

    def update_contact(self, contact: ContactDetails, *, now: datetime) -> bool:
        """Overwrite contact fields that differ, returning whether anything changed.

        Blank incoming values never erase stored ones.
        """

        changed = False
        for attribute in ("name", "email", "phone", "company"):
            incoming = getattr(contact, attribute)
            if not incoming or getattr(self, attribute) == incoming:
                continue
            setattr(self, attribute, incoming)
            changed = True
        if changed:
            self.touch(now)
        return changed

    def deactivate(self, *, now: datetime) -> None:
        if self.active:
            self.active = False
            self.touch(now)
