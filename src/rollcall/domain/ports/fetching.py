"""Ports for reading from and writing to the external registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rollcall.domain.model import ContactDetails, EventDetails, Participant


@dataclass(frozen=True, slots=True)
class RegistryParticipant:
    """One roster entry as reported by the registry, identifier not yet normalized."""

    identifier: str
    contact: ContactDetails
    registry_status: str | None = None


@dataclass(frozen=True, slots=True)
class RejectedEntry:
    """A roster entry the adapter could not parse."""

    position: int
    reason: str


@dataclass(slots=True)
class RegistryRoster:
    """Participants currently registered for an event in the registry."""

    external_ref: str
    participants: list[RegistryParticipant] = field(default_factory=list["RegistryParticipant"])
    rejected: list[RejectedEntry] = field(default_factory=list["RejectedEntry"])

    @property
    def found(self) -> int:
        return len(self.participants) + len(self.rejected)


@dataclass(frozen=True, slots=True)
class RegistryEvent:
    external_ref: str
    details: EventDetails


@runtime_checkable
class RegistryReader(Protocol):
    """Read access to the registry; raises ``RegistryUnavailable`` on failure."""

    def fetch_participants(self, external_ref: str) -> RegistryRoster: ...

    def fetch_event(self, external_ref: str) -> RegistryEvent: ...


@runtime_checkable
class RegistryWriter(Protocol):
    """Best-effort write access; raises ``RegistryUnavailable`` on failure."""

    def publish_participant(self, external_ref: str, participant: Participant) -> None: ...


__all__ = [
    "RegistryEvent",
    "RegistryParticipant",
    "RegistryReader",
    "RegistryRoster",
    "RegistryWriter",
    "RejectedEntry",
]
