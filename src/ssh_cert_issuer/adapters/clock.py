"""
Clock adapters — implement the Clock port.

SystemClock is the production default. FixedClock pins "now" to one instant
so issuance timestamps and renewal decisions are reproducible.
"""

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """The real current time, in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """
    Always returns the same instant.

    Naive datetimes are rejected: every instant the issuer compares must
    carry an offset.
    """

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError(f"FixedClock needs a timezone-aware instant, got {instant!r}")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def __repr__(self) -> str:
        return f"FixedClock({self._instant.isoformat()})"
