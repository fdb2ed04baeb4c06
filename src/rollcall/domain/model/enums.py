"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Origin(StrEnum):
    """Which source first produced a participant or registration row."""

    EXTERNAL = "external"
    LOCAL = "local"
    MANUAL = "manual"


class RegistrationStatus(StrEnum):
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def rank(self) -> int:
        """Reporting precedence: checked_in > confirmed > registered > the rest."""
        return _STATUS_RANK[self]


_STATUS_RANK: dict[RegistrationStatus, int] = {
    RegistrationStatus.CHECKED_IN: 3,
    RegistrationStatus.CONFIRMED: 2,
    RegistrationStatus.REGISTERED: 1,
    RegistrationStatus.NO_SHOW: 0,
    RegistrationStatus.CANCELLED: 0,
}


class EventStatus(StrEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"
