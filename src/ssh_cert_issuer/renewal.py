"""
Renewal — decides whether an issued certificate is due for reissuance.

Two states only, recomputed on every evaluation and never stored:

  FRESH ──(now ≥ validity_end_time − early_renewal_hours)──▶ READY_FOR_RENEWAL

The evaluator is a pure function of (end time, early renewal hours, now).
It is applied at two lifecycle points with different effects:

  - plan time:    READY_FOR_RENEWAL → the flag becomes unknown and the
                  resource must be replaced (a new serial, never an in-place
                  update of the signed bytes)
  - refresh time: READY_FOR_RENEWAL → the reported flag becomes true;
                  nothing is replaced

Both call sites skip evaluation when no certificate has been issued yet
(no end time), and both fail when the stored end time cannot be parsed:
a corrupt timestamp is never read as "not yet due".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from ssh_cert_issuer.domain.models import RenewalDecision
from ssh_cert_issuer.domain.ports import Clock
from ssh_cert_issuer.railway import ErrorCode, Result

log = structlog.get_logger()

READY_FOR_RENEWAL_ATTRIBUTE = "ready_for_renewal"


@dataclass(frozen=True, slots=True)
class PlanModification:
    """
    Changes a plan must carry.

    ready_for_renewal is None when the planned value is unknown until apply.
    requires_replace names the attributes that force replacement.
    """

    ready_for_renewal: bool | None = False
    requires_replace: tuple[str, ...] = ()

    @property
    def replace(self) -> bool:
        return bool(self.requires_replace)


_RFC3339 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?(?P<offset>Z|[+-]\d{2}:\d{2})"
)


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise ValueError(f"timestamp {text!r} is not RFC3339")
    # datetime keeps microseconds; longer fractions are truncated
    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")
    offset = "+00:00" if match["offset"] == "Z" else match["offset"]
    return datetime.fromisoformat(f"{match['date']}T{match['time']}.{fraction}{offset}")


def parse_rfc3339(text: str) -> Result[datetime]:
    """Parse a stored validity timestamp; offset-less or malformed input fails."""
    return Result.from_computation(
        lambda: _parse_rfc3339(text),
        ErrorCode.TIMESTAMP_PARSE_FAILED,
        f"failed to parse data from string: {text}",
        details={"timestamp": text},
    )


def evaluate_renewal(
    validity_end_time: datetime,
    early_renewal_hours: int,
    now: datetime,
) -> RenewalDecision:
    """
    Decide whether the certificate is ready for renewal at `now`.

    The boundary is inclusive: at exactly end − hours the certificate is
    already READY_FOR_RENEWAL. With zero early renewal hours this is
    "has the certificate expired".
    """
    early_renewal_time = validity_end_time - timedelta(hours=early_renewal_hours)
    if early_renewal_time <= now:
        return RenewalDecision.READY_FOR_RENEWAL
    return RenewalDecision.FRESH


def _evaluate_stored(
    validity_end_time: str,
    early_renewal_hours: int,
    clock: Clock,
) -> Result[RenewalDecision]:
    return parse_rfc3339(validity_end_time).map(
        lambda end: evaluate_renewal(end, early_renewal_hours, clock.now())
    )


def plan_renewal(
    validity_end_time: str | None,
    early_renewal_hours: int,
    clock: Clock,
) -> Result[PlanModification]:
    """
    Plan-time call site.

    Returns an empty PlanModification while the certificate is fresh or not
    issued yet; once it is due, ready_for_renewal becomes unknown and the
    resource must be replaced.
    """
    if validity_end_time is None:
        return Result.success(PlanModification())

    def _to_plan(decision: RenewalDecision) -> PlanModification:
        if decision is RenewalDecision.FRESH:
            return PlanModification()
        log.info(
            "renewal.ready",
            phase="plan",
            validity_end_time=validity_end_time,
            early_renewal_hours=early_renewal_hours,
        )
        return PlanModification(
            ready_for_renewal=None,
            requires_replace=(READY_FOR_RENEWAL_ATTRIBUTE,),
        )

    return _evaluate_stored(validity_end_time, early_renewal_hours, clock).map(_to_plan)


def refresh_renewal(
    validity_end_time: str | None,
    early_renewal_hours: int,
    clock: Clock,
    current: bool = False,
) -> Result[bool]:
    """
    Refresh-time call site: the ready_for_renewal flag to report.

    With no end time the current flag is returned untouched.
    """
    if validity_end_time is None:
        return Result.success(current)

    def _to_flag(decision: RenewalDecision) -> bool:
        ready = decision is RenewalDecision.READY_FOR_RENEWAL
        if ready:
            log.info(
                "renewal.ready",
                phase="refresh",
                validity_end_time=validity_end_time,
                early_renewal_hours=early_renewal_hours,
            )
        return ready

    return _evaluate_stored(validity_end_time, early_renewal_hours, clock).map(_to_flag)
