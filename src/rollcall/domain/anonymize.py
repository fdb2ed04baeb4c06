"""Masking of personal data for exports and shared reports.

Masks are deterministic and idempotent: masking an already masked value
returns it unchanged, so exports can be re-anonymized safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from rollcall.domain.identity import COMPANY_ID_LENGTH, PERSON_ID_LENGTH
from rollcall.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import datetime

MASK: Final[str] = "*"
INVALID_EMAIL_MASK: Final[str] = "***@***.***"
UNKNOWN_IDENTIFIER_MASK: Final[str] = "***.***.***-**"
AREA_CODE_DIGITS: Final[int] = 2
COUNTRY_CODE: Final[str] = "55"
NATIONAL_PHONE_DIGITS: Final[int] = 10
UNKNOWN_PHONE_MASK: Final[str] = "(**) *****-****"

DEFAULT_MASKED_FIELDS: Final[tuple[str, ...]] = (
    "identifier",
    "name",
    "email",
    "phone",
    "company",
)


class FieldKind(StrEnum):
    IDENTIFIER = "identifier"
    EMAIL = "email"
    PHONE = "phone"
    TEXT = "text"


_KIND_HINTS: Final[tuple[tuple[FieldKind, tuple[str, ...]], ...]] = (
    (FieldKind.IDENTIFIER, ("identifier", "cpf", "cnpj", "document")),
    (FieldKind.EMAIL, ("email", "mail")),
    (FieldKind.PHONE, ("phone", "telefone", "celular", "mobile")),
)


def field_kind(field_name: str) -> FieldKind:
    lowered = field_name.lower()
    for kind, hints in _KIND_HINTS:
        if any(hint in lowered for hint in hints):
            return kind
    return FieldKind.TEXT


def mask_identifier(value: str) -> str:
    # already-masked characters count as slots so a second pass is a no-op
    slots = [char for char in value if char.isdigit() or char == MASK]
    if len(slots) == PERSON_ID_LENGTH:
        return f"{''.join(slots[:3])}.***.***-{''.join(slots[-2:])}"
    if len(slots) == COMPANY_ID_LENGTH:
        return f"{''.join(slots[:2])}.***.***/****-{''.join(slots[-2:])}"
    return UNKNOWN_IDENTIFIER_MASK


def mask_email(value: str) -> str:
    parts = value.split("@")
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        return INVALID_EMAIL_MASK
    local, domain = parts
    if len(local) == 1:
        return f"{MASK}@{domain}"
    return f"{local[0]}{MASK * (len(local) - 1)}@{domain}"


def _national_number(value: str) -> str | None:
    """Strip the country prefix; ``None`` for numbers from another country."""

    number = value.strip()
    if number.startswith("+"):
        number = number[1:].lstrip()
        if not number.startswith(COUNTRY_CODE):
            return None
        return number[len(COUNTRY_CODE) :].lstrip(" -.")
    digits = sum(char.isdigit() for char in number)
    if digits > NATIONAL_PHONE_DIGITS + 1 and number.startswith(COUNTRY_CODE):
        return number[len(COUNTRY_CODE) :].lstrip(" -.")
    return number


def mask_phone(value: str) -> str:
    """Keep the area code and layout of a national number, star the rest.

    Anything that is not a recognisable national number gets a fixed mask.
    """

    number = _national_number(value)
    if number is None:
        return UNKNOWN_PHONE_MASK
    slots = sum(char.isdigit() or char == MASK for char in number)
    if slots < NATIONAL_PHONE_DIGITS:
        return UNKNOWN_PHONE_MASK
    kept = 0
    masked: list[str] = []
    for char in number:
        if not char.isdigit():
            masked.append(char)
        elif kept < AREA_CODE_DIGITS:
            masked.append(char)
            kept += 1
        else:
            masked.append(MASK)
    return "".join(masked)


def mask_text(value: str) -> str:
    if len(value) <= 2:  # noqa: PLR2004
        return MASK * len(value)
    return f"{value[0]}{MASK * (len(value) - 2)}{value[-1]}"


_MASKERS: Final[dict[FieldKind, Callable[[str], str]]] = {
    FieldKind.IDENTIFIER: mask_identifier,
    FieldKind.EMAIL: mask_email,
    FieldKind.PHONE: mask_phone,
    FieldKind.TEXT: mask_text,
}


def mask_value(value: object, field_name: str) -> str | None:
    """Mask one value according to the kind its field name implies. ``None`` stays ``None``."""

    if value is None:
        return None
    return _MASKERS[field_kind(field_name)](str(value))


def mask[V](
    record: Mapping[str, V],
    fields: Iterable[str] = DEFAULT_MASKED_FIELDS,
) -> dict[str, V | str | None]:
    """Return a copy of ``record`` with ``fields`` masked; other keys pass through."""

    targets = set(fields)
    return {
        key: mask_value(value, key) if key in targets else value
        for key, value in record.items()
    }


def mask_rows[V](
    rows: Iterable[Mapping[str, V]],
    fields: Iterable[str] = DEFAULT_MASKED_FIELDS,
) -> list[dict[str, V | str | None]]:
    targets = tuple(fields)
    return [mask(row, targets) for row in rows]


@dataclass(frozen=True, slots=True)
class AnonymizationReport:
    """Summary attached to an anonymized export."""

    total_records: int
    fields: tuple[str, ...]
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_rows(
        cls,
        rows: Iterable[Mapping[str, object]],
        fields: Iterable[str] = DEFAULT_MASKED_FIELDS,
    ) -> AnonymizationReport:
        rows = list(rows)
        present = tuple(
            name for name in dict.fromkeys(fields) if any(name in row for row in rows)
        )
        return cls(total_records=len(rows), fields=present)
