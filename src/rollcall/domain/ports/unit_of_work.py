"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from rollcall.domain.ports.persistence import (
        CheckInRepository,
        EventRepository,
        ParticipantRepository,
        RegistrationRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    ``commit`` raises :class:`~rollcall.domain.ports.persistence.UniqueViolation`
    when a pending write collides with a uniqueness constraint; the transaction is
    rolled back before the error propagates.
    """

    @property
    def repositories(self) -> TRepositories: ...  # the repo list itself should be immutable

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CheckInRepositories(RepositoryCollection):
    """Repositories owned by the registration store."""

    participants: ParticipantRepository
    events: EventRepository
    registrations: RegistrationRepository
    check_ins: CheckInRepository


type CheckInUnitOfWork = UnitOfWork[CheckInRepositories]
type UnitOfWorkFactory = Callable[[], CheckInUnitOfWork]
