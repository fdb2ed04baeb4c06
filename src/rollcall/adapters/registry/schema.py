"""Pydantic models describing the registry API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rollcall.domain.identity import pad_person_identifier


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class RegistryBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ParticipantPayload(RegistryBaseModel):
    """One row of ``Evento/ConsultarParticipante``."""

    identifier: str = Field(alias="CPF")
    name: str = Field(alias="NomeRazaoSocialPF", min_length=1)
    company: str | None = Field(default=None, alias="NomeRazaoSocialPJ")
    company_identifier: str | None = Field(default=None, alias="CNPJ")
    email: str | None = Field(default=None, alias="Email")
    phone: str | None = Field(default=None, alias="Telefone")
    status: str | None = Field(default=None, alias="Situacao")
    participant_type: str | None = Field(default=None, alias="TipoParticipanteNome")

    @field_validator("identifier", mode="before")
    @classmethod
    def _restore_leading_zeros(cls, value: object) -> object:
        # the registry serialises person identifiers as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return pad_person_identifier(value)
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _lowercase_email(cls, value: object) -> object:
        value = _blank_to_none(value)
        return value.lower() if isinstance(value, str) else value

    @field_validator("company_identifier", mode="before")
    @classmethod
    def _stringify_company_identifier(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    _normalize_optional = field_validator(
        "name", "company", "company_identifier", "phone", "status", "participant_type",
        mode="before",
    )(_blank_to_none)


class EventPayload(RegistryBaseModel):
    """One row of ``Evento/Consultar``."""

    external_ref: str = Field(alias="CodEvento")
    title: str | None = Field(default=None, alias="TituloEvento")
    starts_at: str | None = Field(default=None, alias="PeriodoInicial")
    ends_at: str | None = Field(default=None, alias="PeriodoFinal")
    venue: str | None = Field(default=None, alias="Local")
    city: str | None = Field(default=None, alias="NomeCidade")
    capacity: int | None = Field(default=None, alias="MaxParticipante")
    status: str | None = Field(default=None, alias="Situacao")

    @field_validator("external_ref", mode="before")
    @classmethod
    def _stringify_code(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("capacity", mode="before")
    @classmethod
    def _parse_capacity(cls, value: object) -> object:
        value = _blank_to_none(value)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                return None
        return value

    _normalize_optional = field_validator(
        "title", "starts_at", "ends_at", "venue", "city", "status", mode="before"
    )(_blank_to_none)


class PublishParticipantRequest(RegistryBaseModel):
    """Body of ``Evento/InscreverParticipante``."""

    org_code: str = Field(serialization_alias="CodSebrae")
    external_ref: str = Field(serialization_alias="CodEvento")
    identifier: str = Field(serialization_alias="CPF")
    name: str = Field(serialization_alias="NomeRazaoSocialPF")
    email: str | None = Field(default=None, serialization_alias="Email")
    phone: str | None = Field(default=None, serialization_alias="Telefone")
    company: str | None = Field(default=None, serialization_alias="NomeRazaoSocialPJ")
