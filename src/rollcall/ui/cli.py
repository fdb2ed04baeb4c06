from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from datetime import UTC, datetime
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from rollcall.app import (
    check_in,
    create_event,
    deactivate_participant,
    export_rows,
    publish_participant,
    register_participant,
    sync_event,
    sync_registrations,
    walk_in,
)
from rollcall.config import configure_logging, desk_context, get_rate_limit_config
from rollcall.domain.anonymize import AnonymizationReport
from rollcall.domain.model import ContactDetails, EventDetails, EventStatus
from rollcall.domain.rate_limit import TokenBucketLimiter
from rollcall.domain.result import Err

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from rollcall.domain.result import Result
    from rollcall.domain.sync import SyncResult

log = logging.getLogger(__name__)

CANCEL_SYNC = threading.Event()


class CommandFailedError(RuntimeError):
    """An engine call returned an error result."""


def _add_contact_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", type=str, required=True, help="Participant name")
    parser.add_argument("--email", type=str, help="Optional email address")
    parser.add_argument("--phone", type=str, help="Optional phone number")
    parser.add_argument("--company", type=str, help="Optional company name")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Event check-in and registry reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    event = subparsers.add_parser("event", help="Event management commands")
    event_sub = event.add_subparsers(dest="event_command", required=True)
    event_create = event_sub.add_parser("create", help="Create a local event")
    event_create.add_argument("--name", type=str, required=True, help="Event name")
    event_create.add_argument("--starts-at", type=str, help="ISO-8601 start timestamp")
    event_create.add_argument("--ends-at", type=str, help="ISO-8601 end timestamp")
    event_create.add_argument("--venue", type=str, help="Venue description")
    event_create.add_argument("--capacity", type=int, help="Maximum number of participants")
    event_create.add_argument(
        "--external-ref",
        type=str,
        help="Registry reference code to link the event to",
    )

    import_ = subparsers.add_parser(
        "import", help="Import a registry event and sync its participants"
    )
    import_.add_argument("external_ref", type=str, help="Registry reference code")
    import_.add_argument(
        "--overwrite",
        action="store_true",
        default=None,
        help="Refresh contact data and statuses of known participants",
    )

    sync = subparsers.add_parser("sync", help="Sync the registry roster of a local event")
    sync.add_argument("event_id", type=str, help="Local event id")
    sync.add_argument(
        "--overwrite",
        action="store_true",
        default=None,
        help="Refresh contact data and statuses of known participants",
    )

    participant = subparsers.add_parser("participant", help="Participant management commands")
    participant_sub = participant.add_subparsers(dest="participant_command", required=True)
    deactivate = participant_sub.add_parser(
        "deactivate", help="Stop accepting new registrations for a participant"
    )
    deactivate.add_argument("participant_id", type=str, help="Local participant id")

    register = subparsers.add_parser("register", help="Register a participant locally")
    register.add_argument("identifier", type=str, help="Person or company identifier")
    register.add_argument("event_id", type=str, help="Local event id")
    _add_contact_arguments(register)

    check = subparsers.add_parser("check-in", help="Check a registration in")
    check.add_argument("registration_id", type=str, help="Registration id")
    check.add_argument("--operator", type=str, required=True, help="Front-desk operator")
    check.add_argument("--note", type=str, help="Optional free-text note")

    walk = subparsers.add_parser("walk-in", help="Register and check in an unregistered person")
    walk.add_argument("identifier", type=str, help="Person or company identifier")
    walk.add_argument("event_id", type=str, help="Local event id")
    walk.add_argument("--operator", type=str, required=True, help="Front-desk operator")
    walk.add_argument("--note", type=str, help="Optional free-text note")
    _add_contact_arguments(walk)

    export = subparsers.add_parser("export", help="Print effective registrations as JSON lines")
    export.add_argument("event_id", type=str, help="Local event id")
    export.add_argument("--anonymize", action="store_true", help="Mask personal data")
    export.add_argument(
        "--include-registry",
        action="store_true",
        help="Consult the registry roster to report no-shows",
    )

    publish = subparsers.add_parser("publish", help="Push a participant to the registry")
    publish.add_argument("participant_id", type=str, help="Local participant id")
    publish.add_argument("event_id", type=str, help="Local event id")
    publish.add_argument(
        "--force",
        action="store_true",
        help="Send even when the registry already lists the participant",
    )

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _contact(args: argparse.Namespace) -> ContactDetails:
    return ContactDetails(name=args.name, email=args.email, phone=args.phone, company=args.company)


def _require[T](result: Result[T, Exception]) -> T:
    if isinstance(result, Err):
        raise CommandFailedError(str(result.error)) from result.error
    return result.value


def _log_sync(result: SyncResult) -> None:
    log.info(
        "Registry sync finished: found=%s, inserted=%s, updated=%s, skipped=%s, cancelled=%s",
        result.found,
        result.inserted,
        result.updated,
        result.skipped,
        result.cancelled,
    )
    for failure in result.failures:
        log.warning("  entry #%s (%s): %s", failure.position, failure.identifier, failure.reason)


def _limiter() -> TokenBucketLimiter:
    config = get_rate_limit_config()
    return TokenBucketLimiter(config.max_requests, config.window_seconds)


def _dispatch(args: argparse.Namespace) -> None:  # noqa: C901
    if args.command == "event" and args.event_command == "create":
        details = EventDetails(
            name=args.name,
            starts_at=_parse_iso_datetime(args.starts_at),
            ends_at=_parse_iso_datetime(args.ends_at),
            venue=args.venue,
            capacity=args.capacity,
            status=EventStatus.ACTIVE,
        )
        event = _require(create_event(details, external_ref=args.external_ref))
        log.info("Event id: %s", event.id)
    elif args.command == "import":
        _log_sync(
            _require(sync_event(args.external_ref, overwrite=args.overwrite, cancel=CANCEL_SYNC))
        )
    elif args.command == "sync":
        _log_sync(
            _require(
                sync_registrations(
                    _parse_uuid(args.event_id), overwrite=args.overwrite, cancel=CANCEL_SYNC
                )
            )
        )
    elif args.command == "participant" and args.participant_command == "deactivate":
        participant = _require(deactivate_participant(_parse_uuid(args.participant_id)))
        log.info("Participant %s active=%s", participant.id, participant.active)
    elif args.command == "register":
        registration = _require(
            register_participant(
                args.identifier, _parse_uuid(args.event_id), contact=_contact(args)
            )
        )
        log.info("Registration id: %s (%s)", registration.id, registration.status)
    elif args.command == "check-in":
        outcome = _require(
            check_in(
                _parse_uuid(args.registration_id),
                operator=args.operator,
                note=args.note,
                limiter=_limiter(),
            )
        )
        _log_check_in(outcome.created, outcome.check_in.checked_in_at, outcome.check_in.operator)
    elif args.command == "walk-in":
        outcome = _require(
            walk_in(
                args.identifier,
                _parse_uuid(args.event_id),
                contact=_contact(args),
                operator=args.operator,
                note=args.note,
                limiter=_limiter(),
            )
        )
        _log_check_in(outcome.created, outcome.check_in.checked_in_at, outcome.check_in.operator)
    elif args.command == "export":
        _export(args)
    elif args.command == "publish":
        published = _require(
            publish_participant(
                _parse_uuid(args.participant_id), _parse_uuid(args.event_id), force=args.force
            )
        )
        log.info("Publish result: %s", published)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def _export(args: argparse.Namespace) -> None:
    rows = _require(
        export_rows(
            _parse_uuid(args.event_id),
            anonymize=args.anonymize,
            include_registry_roster=args.include_registry,
        )
    )
    for row in rows:
        sys.stdout.write(json.dumps(row, ensure_ascii=False) + "\n")
    if args.anonymize:
        report = AnonymizationReport.for_rows(rows)
        log.info("Anonymized %s rows (fields: %s)", report.total_records, ", ".join(report.fields))


def _log_check_in(created: bool, checked_in_at: datetime, operator: str) -> None:  # noqa: FBT001
    if created:
        log.info("Checked in at %s", checked_in_at.isoformat())
    else:
        log.info("Already checked in at %s by %s", checked_in_at.isoformat(), operator)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    operator = getattr(parsed_args, "operator", None)
    event = getattr(parsed_args, "event_id", None) or getattr(parsed_args, "external_ref", None)
    with desk_context(operator=operator, event=event):
        try:
            _dispatch(parsed_args)
        except CommandFailedError as exc:
            log.error("%s", exc)  # noqa: TRY400
            sys.exit(1)
        except ValueError:
            log.exception("CLI validation error")
            sys.exit(2)
        except Exception:
            log.exception("Fatal error")
            sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Stop a running sync after the current row; a second Ctrl+C exits immediately."""
    if CANCEL_SYNC.is_set():
        log.info("Closed by user (Ctrl+C)")
        sys.exit(0)
    log.info("Cancelling after the current entry (Ctrl+C again to quit)")
    CANCEL_SYNC.set()


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
