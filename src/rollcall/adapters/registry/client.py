"""HTTP client for the external participant registry."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, cast

import httpx
from pydantic import ValidationError

from rollcall.adapters.http_resilience import ResilientClient
from rollcall.config.registry import RegistryConfig, get_registry_config
from rollcall.domain.errors import EventNotFound, RegistryUnavailable
from rollcall.domain.model import utcnow
from rollcall.domain.ports.fetching import (
    RegistryEvent,
    RegistryReader,
    RegistryRoster,
    RegistryWriter,
    RejectedEntry,
)

from .schema import EventPayload, ParticipantPayload, PublishParticipantRequest
from .translator import parse_event, parse_participant

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from rollcall.config.http_resilience import ResilienceConfig
    from rollcall.domain.model import Participant

log = getLogger(__name__)

EVENT_PATH: Final[str] = "Evento/Consultar"
PARTICIPANTS_PATH: Final[str] = "Evento/ConsultarParticipante"
PUBLISH_PATH: Final[str] = "Evento/InscreverParticipante"
AVAILABLE_SITUATION_CODE: Final[str] = "D"


def should_cache_payload(payload: object) -> bool:
    """Only event lookups are cached; rosters must always be fresh."""

    if not isinstance(payload, list) or not payload:
        return False
    items = cast("list[object]", payload)
    return all(isinstance(item, dict) and "TituloEvento" in item for item in items)


def _default_config() -> RegistryConfig:
    return get_registry_config(cache_predicate=should_cache_payload)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _year_window(year: int) -> dict[str, str]:
    return {"PeriodoInicial": f"01/01/{year}", "PeriodoFinal": f"31/12/{year}"}


@dataclass(slots=True)
class RegistryClient:
    """Reads rosters and event metadata from the registry and publishes walk-ins back."""

    config: RegistryConfig = field(default_factory=_default_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    today: Callable[[], datetime] = field(default=utcnow)

    # RegistryReader ----------------------------------------------------------

    def fetch_participants(self, external_ref: str) -> RegistryRoster:
        return asyncio.run(self._fetch_participants_async(external_ref))

    def fetch_event(self, external_ref: str) -> RegistryEvent:
        return asyncio.run(self._fetch_event_async(external_ref))

    # RegistryWriter ----------------------------------------------------------

    def publish_participant(self, external_ref: str, participant: Participant) -> None:
        asyncio.run(self._publish_participant_async(external_ref, participant))

    async def _fetch_participants_async(self, external_ref: str) -> RegistryRoster:
        params = {"CodSebrae": self.config.org_code, "CodEvento": external_ref}
        async with self.client_factory(self.config.resilience) as client:
            payload = await self._get_json(client, PARTICIPANTS_PATH, params, external_ref)

        if not isinstance(payload, list):
            raise RegistryUnavailable(
                f"Unexpected roster payload for event {external_ref}", external_ref=external_ref
            )

        roster = RegistryRoster(external_ref=external_ref)
        for position, item in enumerate(cast("list[Any]", payload)):
            try:
                entry = ParticipantPayload.model_validate(item)
            except ValidationError as exc:
                reason = "; ".join(
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                )
                roster.rejected.append(RejectedEntry(position=position, reason=reason))
                continue
            roster.participants.append(parse_participant(entry))

        log.info(
            "Registry returned %s participants for event %s (%s rejected)",
            roster.found,
            external_ref,
            len(roster.rejected),
        )
        return roster

    async def _fetch_event_async(self, external_ref: str) -> RegistryEvent:
        base_params = {"CodSebrae": self.config.org_code, "CodEvento": external_ref}
        year = self.today().year
        # events are listed per calendar year; search around the current one first
        attempts = [
            {**base_params, "Situacao": AVAILABLE_SITUATION_CODE, **_year_window(candidate)}
            for candidate in (year, year - 1, year + 1)
        ]
        attempts.append(base_params)

        async with self.client_factory(self.config.resilience) as client:
            for params in attempts:
                payload = await self._get_json(client, EVENT_PATH, params, external_ref)
                if isinstance(payload, list) and payload:
                    first = cast("list[Any]", payload)[0]
                    try:
                        return parse_event(EventPayload.model_validate(first))
                    except ValidationError as exc:
                        raise RegistryUnavailable(
                            f"Malformed event payload for {external_ref}: {exc}",
                            external_ref=external_ref,
                        ) from exc
        raise EventNotFound(external_ref)

    async def _publish_participant_async(
        self, external_ref: str, participant: Participant
    ) -> None:
        body = PublishParticipantRequest(
            org_code=self.config.org_code,
            external_ref=external_ref,
            identifier=participant.identifier,
            name=participant.name,
            email=participant.email,
            phone=participant.phone,
            company=participant.company,
        )
        async with self.client_factory(self.config.resilience) as client:
            try:
                response = await client.post(
                    PUBLISH_PATH, json=body.model_dump(by_alias=True, exclude_none=True)
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                log.warning("Publishing participant %s failed: %s", participant.id, exc)
                raise RegistryUnavailable(
                    f"Registry rejected participant {participant.id}: {exc}",
                    external_ref=external_ref,
                ) from exc
        log.info("Published participant %s to registry event %s", participant.id, external_ref)

    async def _get_json(
        self,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
        external_ref: str,
    ) -> object:
        try:
            return await client.get_json(path, params=params)
        except httpx.HTTPError as exc:
            log.error("Registry request %s failed: %s", path, exc)
            raise RegistryUnavailable(
                f"Registry request {path} failed: {exc}", external_ref=external_ref
            ) from exc
        except ValueError as exc:
            raise RegistryUnavailable(
                f"Registry returned invalid JSON for {path}", external_ref=external_ref
            ) from exc


if TYPE_CHECKING:
    _reader_check: RegistryReader = RegistryClient()
    _writer_check: RegistryWriter = RegistryClient()
