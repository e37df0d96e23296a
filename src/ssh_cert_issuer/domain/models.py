"""
Domain models — immutable values flowing through certificate issuance.

Enumerations name the closed sets the issuer understands (key algorithms,
PEM document kinds, certificate kinds, renewal decisions). The dataclasses
are frozen: a template is built fresh for every issuance and discarded after
signing, and an issued certificate never changes once produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Any

from cryptography.hazmat.primitives.serialization import SSHCertificate, SSHCertificateType

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@unique
class Algorithm(Enum):
    """Algorithm of a CA private key. Derived from the key, never chosen by the caller."""

    RSA = "RSA"
    ECDSA = "ECDSA"
    ED25519 = "ED25519"

    def __str__(self) -> str:
        return self.value


@unique
class PEMPreamble(Enum):
    """
    PEM header labels (RFC 1421 / RFC 7468 encapsulation boundaries) we recognise.

    Only the three private key kinds have a decoder; the others are recognised
    so that handing over the wrong document fails with a precise error.
    """

    PUBLIC_KEY = "PUBLIC KEY"
    PRIVATE_KEY_PKCS8 = "PRIVATE KEY"
    PRIVATE_KEY_RSA = "RSA PRIVATE KEY"
    PRIVATE_KEY_EC = "EC PRIVATE KEY"
    PRIVATE_KEY_OPENSSH = "OPENSSH PRIVATE KEY"
    CERTIFICATE = "CERTIFICATE"
    CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"

    def __str__(self) -> str:
        return self.value


@unique
class CertificateKind(Enum):
    """SSH certificate type; fixed per resource."""

    HOST = "host"
    USER = "user"

    @property
    def ssh_type(self) -> SSHCertificateType:
        return SSHCertificateType.HOST if self is CertificateKind.HOST else SSHCertificateType.USER

    @property
    def resource_type_name(self) -> str:
        return f"ssh_{self.value}_cert"


@unique
class RenewalDecision(Enum):
    """Outcome of evaluating a certificate's renewal window. Never stored."""

    FRESH = "FRESH"
    READY_FOR_RENEWAL = "READY_FOR_RENEWAL"


@dataclass(frozen=True, slots=True)
class ParsedPrivateKey:
    """
    A decoded CA private key tagged with its algorithm.

    `key` is a cryptography private key object (RSA, EC or Ed25519).
    `preamble` records which PEM document kind it was decoded from.
    """

    key: Any = field(repr=False)
    algorithm: Algorithm
    preamble: PEMPreamble


@dataclass(frozen=True, slots=True)
class CertificateTemplate:
    """
    Everything that goes into a certificate except the keys and the signature.

    `valid_after`/`valid_before` are Unix seconds; `critical_options` and
    `extensions` map option names to the empty string.
    """

    key_id: str
    valid_after: int
    valid_before: int
    serial: int
    kind: CertificateKind
    valid_principals: tuple[str, ...] = ()
    critical_options: dict[str, str] = field(default_factory=dict)
    extensions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class IssuedCertificate:
    """
    A signed certificate and the values derived from it.

    `authorized_key` is the certificate in authorized-key text form,
    newline-terminated.
    """

    template: CertificateTemplate
    ca_key_algorithm: Algorithm
    certificate: SSHCertificate = field(repr=False)
    authorized_key: str = field(repr=False)

    @property
    def id(self) -> str:
        """Decimal serial number — the externally visible identifier."""
        return str(self.template.serial)

    @property
    def validity_start_time(self) -> str:
        return format_rfc3339(self.template.valid_after)

    @property
    def validity_end_time(self) -> str:
        return format_rfc3339(self.template.valid_before)


def format_rfc3339(unix_seconds: int) -> str:
    """Format Unix seconds as an RFC3339 UTC timestamp, e.g. 2023-01-01T12:00:00Z."""
    return datetime.fromtimestamp(unix_seconds, tz=UTC).strftime(RFC3339_FORMAT)
