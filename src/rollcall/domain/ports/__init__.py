"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import (
    RegistryEvent,
    RegistryParticipant,
    RegistryReader,
    RegistryRoster,
    RegistryWriter,
    RejectedEntry,
)
from .persistence import (
    CheckInRepository,
    EventRepository,
    ParticipantRepository,
    RegistrationRepository,
    Repository,
    StaleWrite,
    UniqueViolation,
)
from .unit_of_work import (
    CheckInRepositories,
    CheckInUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "CheckInRepositories",
    "CheckInRepository",
    "CheckInUnitOfWork",
    "EventRepository",
    "ParticipantRepository",
    "RegistrationRepository",
    "RegistryEvent",
    "RegistryParticipant",
    "RegistryReader",
    "RegistryRoster",
    "RegistryWriter",
    "RejectedEntry",
    "Repository",
    "RepositoryCollection",
    "StaleWrite",
    "UniqueViolation",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
