"""Serial source adapter backed by the operating system CSPRNG."""

from __future__ import annotations

import secrets


class SecretsSerialSource:
    """Implements the SerialSource port with secrets.randbelow (uniform, bounded)."""

    def draw(self, upper_bound: int) -> int:
        return secrets.randbelow(upper_bound)
