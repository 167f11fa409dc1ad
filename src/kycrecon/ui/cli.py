from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from kycrecon.app import (
    get_compliance,
    get_summary,
    ingest_extraction,
    refresh_company_roles,
    set_verification_status,
)
from kycrecon.config import ConfigurationError, configure_logging
from kycrecon.domain.compliance import suggest_status
from kycrecon.domain.model import EntityKey, EntityRole, VerificationStatus
from kycrecon.domain.ports.persistence import EntityNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from kycrecon.domain.services import ReconcileResult

log = logging.getLogger(__name__)


def _add_key_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--client-id", type=str, required=True, help="Client the entity belongs to")
    parser.add_argument(
        "--role",
        type=EntityRole,
        choices=list(EntityRole),
        required=True,
        help="Entity role",
    )
    parser.add_argument("--name", type=str, required=True, help="Entity name")
    parser.add_argument(
        "--company",
        type=str,
        help="Owning company name (required for directors and shareholders)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and verify KYC records")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Reconcile extraction payload files")
    ingest.add_argument("--client-id", type=str, required=True, help="Client the documents belong to")
    ingest.add_argument("paths", type=Path, nargs="+", help="Extraction payload JSON files")

    roles = subparsers.add_parser(
        "roles",
        help="Refresh director and shareholder records of a company",
    )
    roles.add_argument("--client-id", type=str, required=True, help="Client the company belongs to")
    roles.add_argument("--company", type=str, required=True, help="Company name")

    status = subparsers.add_parser("status", help="Set an entity's verification status")
    _add_key_arguments(status)
    status.add_argument(
        "--status",
        type=VerificationStatus.parse,
        required=True,
        help="One of: " + ", ".join(VerificationStatus),
    )
    status.add_argument("--kyc-status", type=str, help="Optional free-text advisory")

    compliance = subparsers.add_parser("compliance", help="Evaluate an entity's completeness")
    _add_key_arguments(compliance)

    summary = subparsers.add_parser("summary", help="Show aggregate counts")
    summary.add_argument("--client-id", type=str, help="Restrict counts to one client")

    return parser.parse_args(list(argv))


def _entity_key(args: argparse.Namespace) -> EntityKey:
    try:
        return EntityKey(
            client_id=args.client_id,
            role=args.role,
            name=args.name,
            company_name=args.company,
        )
    except ValueError as exc:
        raise ValueError(f"Invalid entity: {exc}") from exc


def _report(result: ReconcileResult) -> None:
    log.info(
        "Reconciliation finished: saved=%d, unchanged=%d, failed=%d, conflicts=%d",
        len(result.saved),
        len(result.unchanged),
        len(result.failures),
        len(result.conflicts),
    )
    for error in result.failures:
        log.warning("%s: %s (%s)", error.key, error.kind, error.reason)
    for key in result.conflicts:
        log.warning("%s: gave up after repeated version conflicts", key)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))  # noqa: T201


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        key = _entity_key(parsed_args) if parsed_args.command in {"status", "compliance"} else None
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "ingest":
            _report(ingest_extraction(parsed_args.client_id, paths=tuple(parsed_args.paths)))
        elif parsed_args.command == "roles":
            _report(refresh_company_roles(parsed_args.client_id, parsed_args.company))
        elif parsed_args.command == "status" and key is not None:
            record = set_verification_status(key, parsed_args.status, parsed_args.kyc_status)
            log.info("%s is now %s", record.key, record.verification_status)
        elif parsed_args.command == "compliance" and key is not None:
            result = get_compliance(key)
            _print_json(
                {
                    "entity": str(key),
                    "missing_fields": sorted(result.missing_fields),
                    "missing_documents": sorted(result.missing_documents),
                    "discrepancies": [item.describe() for item in result.discrepancies],
                    "advisory": result.advisory_text,
                    "suggested_status": suggest_status(result),
                }
            )
        elif parsed_args.command == "summary":
            _print_json(get_summary(parsed_args.client_id).as_dict())
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except EntityNotFoundError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
