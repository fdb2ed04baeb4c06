from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from rollcall.adapters.registry import (
    EventPayload,
    ParticipantPayload,
    parse_event,
    parse_participant,
    parse_registry_datetime,
)
from rollcall.adapters.registry.translator import DEFAULT_EVENT_NAME
from rollcall.domain.model import EventStatus


def test_participant_payload_normalizes_blank_fields() -> None:
    payload = ParticipantPayload.model_validate(
        {
            "CPF": 98765432100,
            "NomeRazaoSocialPF": " Grace Hopper ",
            "NomeRazaoSocialPJ": "",
            "CNPJ": 12345678000195,
            "Telefone": "   ",
            "Unexpected": "ignored",
        }
    )

    assert payload.identifier == "98765432100"
    assert payload.name == "Grace Hopper"
    assert payload.company is None
    assert payload.company_identifier == "12345678000195"
    assert payload.phone is None


def test_participant_payload_requires_identifier() -> None:
    with pytest.raises(ValidationError):
        ParticipantPayload.model_validate({"NomeRazaoSocialPF": "Grace Hopper"})


def test_parse_participant_builds_contact() -> None:
    payload = ParticipantPayload.model_validate(
        {"CPF": "123.456.789-01", "NomeRazaoSocialPF": "Ada", "Email": "Ada@Example.org"}
    )

    participant = parse_participant(payload)

    assert participant.identifier == "123.456.789-01"
    assert participant.contact.name == "Ada"
    assert participant.contact.email == "ada@example.org"
    assert participant.registry_status is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("10/11/2024", datetime(2024, 11, 10, tzinfo=UTC)),
        ("10/11/2024 09:30", datetime(2024, 11, 10, 9, 30, tzinfo=UTC)),
        ("10/11/2024 09:30:15", datetime(2024, 11, 10, 9, 30, 15, tzinfo=UTC)),
        ("2024-11-10T09:30:00", datetime(2024, 11, 10, 9, 30, tzinfo=UTC)),
        ("2024-11-10T09:30:00-03:00", datetime(2024, 11, 10, 12, 30, tzinfo=UTC)),
        ("soon", None),
        (None, None),
    ],
)
def test_parse_registry_datetime(raw: str | None, expected: datetime | None) -> None:
    assert parse_registry_datetime(raw) == expected


def test_parse_registry_datetime_uses_given_zone() -> None:
    recife = timezone(timedelta(hours=-3))

    parsed = parse_registry_datetime("10/11/2024 09:00", tz=recife)

    assert parsed == datetime(2024, 11, 10, 12, 0, tzinfo=UTC)


def test_parse_event_defaults_for_sparse_payload() -> None:
    payload = EventPayload.model_validate(
        {"CodEvento": "88", "Local": "Hall B - Recife", "NomeCidade": "Recife", "Situacao": "X"}
    )

    event = parse_event(payload)

    assert event.external_ref == "88"
    assert event.details.name == DEFAULT_EVENT_NAME
    assert event.details.venue == "Hall B - Recife"
    assert event.details.status is EventStatus.DRAFT
    assert event.details.capacity is None
    assert event.details.starts_at is None


def test_event_payload_ignores_unparseable_capacity() -> None:
    payload = EventPayload.model_validate({"CodEvento": 1, "MaxParticipante": "many"})

    assert payload.capacity is None
    assert payload.external_ref == "1"
