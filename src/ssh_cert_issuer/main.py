"""
Application entry point — wires dependencies and runs one lifecycle action.

Composition root: loads settings, configures structlog, picks the clock,
creates the certificate resource and runs the requested action on a JSON
document read from stdin. The result is written to stdout as JSON.

    ssh-cert-issuer create --kind user < request.json > state.json
    ssh-cert-issuer read   --kind user < state.json
    ssh-cert-issuer plan   --kind user < plan.json     # {"prior": {...}, "planned": {...}}

This is the ONLY place where concrete adapters are chosen.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter

from ssh_cert_issuer import __version__
from ssh_cert_issuer.adapters.clock import FixedClock, SystemClock
from ssh_cert_issuer.config import AppSettings
from ssh_cert_issuer.domain.models import CertificateKind
from ssh_cert_issuer.domain.ports import Clock
from ssh_cert_issuer.railway import ErrorCode, Result
from ssh_cert_issuer.renewal import PlanModification
from ssh_cert_issuer.resource import CertificateRequest, CertificateState, SshCertificateResource

ACTIONS = ("create", "read", "plan")

_plan_adapter = TypeAdapter(PlanModification)


class PlanDocument(BaseModel):
    """Input of the plan action: the stored state (if any) and the desired request."""

    prior: CertificateState | None = None
    planned: CertificateRequest


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured logging.

    Logs go to stderr; stdout carries the JSON result only.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _create_clock(settings: AppSettings) -> Clock:
    if settings.clock.fixed_now is not None:
        return FixedClock(settings.clock.fixed_now)
    return SystemClock()


M = TypeVar("M", bound=BaseModel)


def _load(model: type[M], document: str) -> Result[M]:
    return Result.from_computation(
        lambda: model.model_validate_json(document),
        ErrorCode.VALIDATION_ERROR,
        f"invalid {model.__name__} document",
    )


def run_action(action: str, resource: SshCertificateResource, document: str) -> Result[str]:
    """
    Run one lifecycle action on a JSON document.

    Returns Result[str] holding the JSON output, or the first failure.
    """
    match action:
        case "create":
            return (
                _load(CertificateRequest, document)
                .flat_map(resource.create)
                .map(lambda state: state.model_dump_json(indent=2))
            )
        case "read":
            return (
                _load(CertificateState, document)
                .flat_map(resource.read)
                .map(lambda state: state.model_dump_json(indent=2))
            )
        case "plan":
            return (
                _load(PlanDocument, document)
                .flat_map(lambda plan: resource.modify_plan(plan.prior, plan.planned))
                .map(lambda modification: _plan_adapter.dump_json(modification, indent=2).decode("utf-8"))
            )
        case _:
            return Result.failure(ErrorCode.VALIDATION_ERROR, f"unknown action: {action}")


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssh-cert-issuer",
        description="Issue SSH host/user certificates and evaluate their renewal window.",
    )
    parser.add_argument("action", choices=ACTIONS, help="lifecycle action to run on the stdin document")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in CertificateKind],
        default=CertificateKind.USER.value,
        help="certificate kind (default: user)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, wire dependencies and run the requested action."""
    args = _build_arg_parser().parse_args(argv)

    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    clock = _create_clock(settings)
    resource = SshCertificateResource(CertificateKind(args.kind), clock=clock)

    log.info(
        "app.starting",
        version=__version__,
        action=args.action,
        resource=resource.type_name,
        clock=repr(clock),
    )

    result = run_action(args.action, resource, sys.stdin.read())

    if result.is_success():
        sys.stdout.write(result.value() + "\n")
        return

    failure = result.error()
    log.error(
        "app.action_failed",
        action=args.action,
        error_code=failure.code.value,
        message=failure.message,
        cause=str(failure.exception) if failure.exception else None,
        **failure.details,
    )
    sys.exit(1)


if __name__ == "__main__":
    main()
