"""Deterministic duplicate resolution for registrations of one identity.

Several registration rows may exist for the same person and event (a synced
row next to a manual walk-in, for instance). Every read path that needs "the"
registration collapses them here, so the answer never depends on row order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from rollcall.domain.errors import DuplicateRegistrationAmbiguity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rollcall.domain.model import CheckIn, CheckInRecord, Registration

log = getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)

type RankKey = tuple[bool, int, bool, datetime, datetime, datetime]


@dataclass(frozen=True, slots=True)
class RegistrationCandidate:
    registration: Registration
    check_in: CheckIn | CheckInRecord | None = None

    @property
    def checked_in_at(self) -> datetime | None:
        return self.check_in.checked_in_at if self.check_in is not None else None


def rank_key(candidate: RegistrationCandidate) -> RankKey:
    """Sort key where a greater value wins."""

    registration = candidate.registration
    checked_in_at = candidate.checked_in_at
    return (
        candidate.check_in is not None,
        registration.status.rank,
        checked_in_at is not None,
        checked_in_at or _EPOCH,
        registration.updated_at,
        registration.created_at,
    )


def resolve(candidates: Sequence[RegistrationCandidate]) -> RegistrationCandidate:
    """Pick the effective registration among duplicates.

    Order: a row with a check-in wins, then the higher status rank, then the
    most recent check-in time. Remaining ties fall back to the most recently
    updated row, then the most recent creation time, then the row id, so the result
    is independent of input order.
    """

    if not candidates:
        msg = "resolve() needs at least one registration"
        raise ValueError(msg)
    ordered = sorted(candidates, key=_total_key, reverse=True)
    if len(ordered) > 1:
        _check_strict(ordered[0], ordered[1])
    return ordered[0]


def _total_key(candidate: RegistrationCandidate) -> tuple[RankKey, str]:
    return rank_key(candidate), candidate.registration.id.hex


def _check_strict(first: RegistrationCandidate, second: RegistrationCandidate) -> None:
    if rank_key(first) != rank_key(second):
        return
    ambiguity = DuplicateRegistrationAmbiguity(first.registration.id, second.registration.id)
    # only the row id separates them
    log.warning("%s; keeping %s", ambiguity, first.registration.id)
