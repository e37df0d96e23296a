"""
Failure description — structured error information for the failure track.

Every failure carries an ErrorCode naming WHAT went wrong, a human-readable
message, the underlying library exception when there is one, and a `details`
mapping with the diagnostic values (offending preamble, byte counts, raw
timestamp) needed to understand the failure without re-running it.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any


@unique
class ErrorCode(Enum):
    """
    Error kinds of the certificate issuer.

    All of them are terminal: nothing in the issuer retries internally.
    """

    # --- Key material ---
    MALFORMED_PEM = "MALFORMED_PEM"
    """No decodable PEM block in the supplied key text."""

    UNSUPPORTED_PREAMBLE = "UNSUPPORTED_PREAMBLE"
    """PEM header is not one of the recognised document kinds."""

    NO_PARSER_FOR_PREAMBLE = "NO_PARSER_FOR_PREAMBLE"
    """PEM header recognised, but it does not hold a private key we can decode."""

    KEY_DECODE_FAILED = "KEY_DECODE_FAILED"
    """Binary decoding of the key body failed."""

    UNSUPPORTED_KEY_TYPE = "UNSUPPORTED_KEY_TYPE"
    """Decoded key is not RSA, ECDSA or Ed25519."""

    PUBLIC_KEY_PARSE_FAILED = "PUBLIC_KEY_PARSE_FAILED"
    """The key to certify is not a usable authorized-key line."""

    # --- Signing ---
    SIGNER_CONSTRUCTION_FAILED = "SIGNER_CONSTRUCTION_FAILED"
    """The CA key cannot be turned into an SSH signer."""

    SIGNING_FAILED = "SIGNING_FAILED"
    """The signing operation itself failed."""

    RANDOM_SOURCE_EXHAUSTED = "RANDOM_SOURCE_EXHAUSTED"
    """The secure random source could not produce a value."""

    # --- State ---
    TIMESTAMP_PARSE_FAILED = "TIMESTAMP_PARSE_FAILED"
    """A stored validity timestamp is not RFC3339."""

    # --- Boundary ---
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Request rejected at the input-validation boundary."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected exception escaped an operation."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor.

    >>> desc = FailureDescription(ErrorCode.MALFORMED_PEM, "no PEM block")
    >>> desc.code
    <ErrorCode.MALFORMED_PEM: 'MALFORMED_PEM'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    details: Mapping[str, Any] = field(default_factory=dict)

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        text = f"{self.code.value}: {self.message}"
        if self.exception is not None:
            text += f" ({self.exception})"
        return text
