"""Canonical form of national person/company identifiers.

Every lookup, merge and export key in the engine goes through :func:`normalize`;
no other module strips punctuation from identifiers on its own.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Final, NewType

from .errors import InvalidIdentityFormat
from .result import Err, Ok, Result

NormalizedId = NewType("NormalizedId", str)

PERSON_ID_LENGTH: Final[int] = 11
COMPANY_ID_LENGTH: Final[int] = 14
_NON_DIGITS = re.compile(r"\D")


class IdentityKind(StrEnum):
    PERSON = "person"
    COMPANY = "company"


_KIND_BY_LENGTH: Final[dict[int, IdentityKind]] = {
    PERSON_ID_LENGTH: IdentityKind.PERSON,
    COMPANY_ID_LENGTH: IdentityKind.COMPANY,
}


def normalize(raw: str) -> Result[NormalizedId, InvalidIdentityFormat]:
    """Strip formatting from ``raw`` and validate the digit count."""

    digits = _NON_DIGITS.sub("", raw)
    if len(digits) not in _KIND_BY_LENGTH:
        return Err(InvalidIdentityFormat(raw, digits=len(digits)))
    return Ok(NormalizedId(digits))


def require_identifier(raw: str) -> NormalizedId:
    """Normalize ``raw`` or raise :class:`InvalidIdentityFormat`."""

    return normalize(raw).unwrap()


def pad_person_identifier(value: int | str) -> str:
    """Restore leading zeros dropped by systems that store identifiers as numbers."""

    digits = _NON_DIGITS.sub("", str(value))
    if 0 < len(digits) < PERSON_ID_LENGTH:
        return digits.zfill(PERSON_ID_LENGTH)
    return digits


def identity_kind(identifier: NormalizedId) -> IdentityKind:
    return _KIND_BY_LENGTH[len(identifier)]


def format_identifier(identifier: NormalizedId) -> str:
    """Render the conventional punctuated form (``000.000.000-00`` / ``00.000.000/0000-00``)."""

    n = identifier
    if identity_kind(n) is IdentityKind.PERSON:
        return f"{n[0:3]}.{n[3:6]}.{n[6:9]}-{n[9:11]}"
    return f"{n[0:2]}.{n[2:5]}.{n[5:8]}/{n[8:12]}-{n[12:14]}"


def same_identity(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    left, right = normalize(a), normalize(b)
    if not (isinstance(left, Ok) and isinstance(right, Ok)):
        return False
    return left.value == right.value
