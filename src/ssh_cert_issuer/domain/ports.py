"""
Ports — Protocol-based interfaces for the issuer's two ambient dependencies.

Issuance and renewal evaluation never read the system clock or the random
source directly; both are injected so tests can pin "now" and drive the
serial number draw:

  Domain ← Ports (protocols) ← Adapters (SystemClock, FixedClock, SecretsSerialSource)
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Port: the current instant, timezone-aware."""

    def now(self) -> datetime: ...


@runtime_checkable
class SerialSource(Protocol):
    """
    Port: cryptographically secure bounded integer draws.

    draw(upper_bound) returns a value uniformly distributed in [0, upper_bound).
    Implementations raise when the underlying entropy source fails.
    """

    def draw(self, upper_bound: int) -> int: ...
