"""SQLAlchemy adapter package for rollcall."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCheckInRepository,
    SqlAlchemyEventRepository,
    SqlAlchemyParticipantRepository,
    SqlAlchemyRegistrationRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    ensure_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCheckInRepository",
    "SqlAlchemyEventRepository",
    "SqlAlchemyParticipantRepository",
    "SqlAlchemyRegistrationRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "ensure_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
