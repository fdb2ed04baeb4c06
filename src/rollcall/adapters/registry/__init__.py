"""Public interface for the registry adapter."""

from __future__ import annotations

from .client import RegistryClient, should_cache_payload
from .schema import EventPayload, ParticipantPayload, PublishParticipantRequest
from .translator import parse_event, parse_participant, parse_registry_datetime

__all__ = [
    "EventPayload",
    "ParticipantPayload",
    "PublishParticipantRequest",
    "RegistryClient",
    "parse_event",
    "parse_participant",
    "parse_registry_datetime",
    "should_cache_payload",
]
