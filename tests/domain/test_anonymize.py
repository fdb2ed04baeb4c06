from __future__ import annotations

import pytest

from rollcall.domain.anonymize import (
    INVALID_EMAIL_MASK,
    UNKNOWN_IDENTIFIER_MASK,
    UNKNOWN_PHONE_MASK,
    AnonymizationReport,
    FieldKind,
    field_kind,
    mask,
    mask_email,
    mask_identifier,
    mask_phone,
    mask_rows,
    mask_text,
    mask_value,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("123.456.789-01", "123.***.***-01"),
        ("12345678901", "123.***.***-01"),
        ("12.345.678/0001-95", "12.***.***/****-95"),
        ("1234", UNKNOWN_IDENTIFIER_MASK),
    ],
)
def test_mask_identifier(raw: str, expected: str) -> None:
    assert mask_identifier(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("joao@example.org", "j***@example.org"),
        ("a@example.org", "*@example.org"),
        ("not-an-email", INVALID_EMAIL_MASK),
        ("@example.org", INVALID_EMAIL_MASK),
        ("a@b@c", INVALID_EMAIL_MASK),
    ],
)
def test_mask_email(raw: str, expected: str) -> None:
    assert mask_email(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("(11) 98765-4321", "(11) *****-****"),
        ("1133334444", "11********"),
        ("+55 11 98765-4321", "11 *****-****"),
        ("+55 (21) 3333-4444", "(21) ****-****"),
        ("5511987654321", "11*********"),
        ("+1 415 555 0100", UNKNOWN_PHONE_MASK),
        ("ramal 12", UNKNOWN_PHONE_MASK),
        ("n/a - ask", UNKNOWN_PHONE_MASK),
    ],
)
def test_mask_phone(raw: str, expected: str) -> None:
    assert mask_phone(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("Ada Lovelace", "A**********e"), ("Al", "**"), ("", "")],
)
def test_mask_text(raw: str, expected: str) -> None:
    assert mask_text(raw) == expected


@pytest.mark.parametrize(
    ("field_name", "raw"),
    [
        ("identifier", "123.456.789-01"),
        ("cnpj", "12.345.678/0001-95"),
        ("email", "joao@example.org"),
        ("email", "broken"),
        ("phone", "(11) 98765-4321"),
        ("phone", "+55 11 98765-4321"),
        ("phone", "ramal 12"),
        ("name", "Ada Lovelace"),
    ],
)
def test_masking_is_idempotent(field_name: str, raw: str) -> None:
    once = mask_value(raw, field_name)

    assert mask_value(once, field_name) == once


@pytest.mark.parametrize(
    ("field_name", "raw"),
    [
        ("identifier", "123.456.789-01"),
        ("identifier", "12.345.678/0001-95"),
        ("identifier", "12345"),
        ("email", "joao@example.org"),
        ("email", "x@example.org"),
        ("email", "broken-address"),
        ("phone", "(11) 98765-4321"),
        ("phone", "+55 11 98765-4321"),
        ("phone", "ramal 12"),
        ("phone", "n/a - ask"),
        ("company", "Acme Ltda"),
        ("name", "Ada Lovelace"),
    ],
)
def test_masked_value_never_contains_the_original(field_name: str, raw: str) -> None:
    masked = mask_value(raw, field_name)

    assert masked is not None
    assert raw not in masked


def test_field_kind_from_name_hints() -> None:
    assert field_kind("participant_cpf") is FieldKind.IDENTIFIER
    assert field_kind("Email") is FieldKind.EMAIL
    assert field_kind("celular") is FieldKind.PHONE
    assert field_kind("company") is FieldKind.TEXT


def test_mask_leaves_none_and_untargeted_fields() -> None:
    record = {"name": "Ada Lovelace", "email": None, "status": "confirmed"}

    masked = mask(record, ["name", "email"])

    assert masked == {"name": "A**********e", "email": None, "status": "confirmed"}
    assert record["name"] == "Ada Lovelace"


def test_mask_rows_and_report() -> None:
    rows = [
        {"identifier": "12345678901", "name": "Ada Lovelace"},
        {"identifier": "98765432100", "name": "Grace Hopper"},
    ]

    masked = mask_rows(rows, ["identifier", "name"])
    report = AnonymizationReport.for_rows(masked, ["identifier", "name", "phone"])

    assert [row["identifier"] for row in masked] == ["123.***.***-01", "987.***.***-00"]
    assert report.total_records == 2
    assert report.fields == ("identifier", "name")
