"""SQLAlchemy-backed unit of work for the registration store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from rollcall.adapters.sqlalchemy.mappings import start_mappers
from rollcall.adapters.sqlalchemy.migrations import upgrade_head
from rollcall.adapters.sqlalchemy.repositories import (
    SqlAlchemyCheckInRepository,
    SqlAlchemyEventRepository,
    SqlAlchemyParticipantRepository,
    SqlAlchemyRegistrationRepository,
)
from rollcall.config.storage import get_database_uri
from rollcall.domain.ports.persistence import StaleWrite, UniqueViolation
from rollcall.domain.ports.unit_of_work import CheckInRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine
    from sqlalchemy.engine.interfaces import DBAPIConnection
    from sqlalchemy.pool import ConnectionPoolEntry

log = getLogger(__name__)

# PostgreSQL reports unique violations as SQLSTATE 23505; SQLite only in the message.
_UNIQUE_SQLSTATE = "23505"


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call rollcall.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _enable_sqlite_foreign_keys(
    dbapi_connection: DBAPIConnection, connection_record: ConnectionPoolEntry
) -> None:
    _ = connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, run migrations and prepare the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_uri(), future=True)
    if resolved_engine.dialect.name == "sqlite" and not event.contains(
        resolved_engine, "connect", _enable_sqlite_foreign_keys
    ):
        event.listen(resolved_engine, "connect", _enable_sqlite_foreign_keys)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    log.info("Database ready at %s", resolved_engine.url.render_as_string(hide_password=True))

    _STATE.engine = resolved_engine


def ensure_started() -> None:
    """Start the adapter with the configured database unless already running."""

    if not is_started():
        startup()


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def is_unique_violation(error: IntegrityError) -> bool:
    original = error.orig
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == _UNIQUE_SQLSTATE
    return "unique" in str(original).lower()


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        """Commit, translating storage conflicts into domain errors.

        Uniqueness collisions raise :class:`UniqueViolation`; an update whose row
        version moved on since it was read raises :class:`StaleWrite`.
        """

        try:
            self.session.commit()
        except StaleDataError as exc:
            self.rollback()
            raise StaleWrite(str(exc)) from exc
        except IntegrityError as exc:
            self.rollback()
            if not is_unique_violation(exc):
                raise
            raise UniqueViolation(str(exc.orig)) from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[CheckInRepositories]):
    """Unit of work over participants, events, registrations and check-ins."""

    def _build_repositories(self, session: Session) -> CheckInRepositories:
        return CheckInRepositories(
            participants=SqlAlchemyParticipantRepository(session),
            events=SqlAlchemyEventRepository(session),
            registrations=SqlAlchemyRegistrationRepository(session),
            check_ins=SqlAlchemyCheckInRepository(session),
        )


if TYPE_CHECKING:
    from rollcall.domain.ports.unit_of_work import CheckInUnitOfWork

    _uow_check: CheckInUnitOfWork = SqlAlchemyUnitOfWork()
