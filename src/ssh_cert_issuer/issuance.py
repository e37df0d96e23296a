"""
Issuance — the railway that produces a signed SSH certificate.

Domain layer — pure business logic. The clock and the random source are
injected via ports, so issuance is deterministic under test.

The stages are connected via flat_map:

  parse_private_key_pem(ca_private_key_pem)
    → new_signer(parsed)
      → build_template(...)          (now from Clock, serial from SerialSource)
        → parse_public_key(public_key_openssh)
          → sign_certificate(template, signer, public_key)

Each stage returns Result[T]; the first failure short-circuits the rest, so
issuance either fully succeeds or fully fails.
"""

from __future__ import annotations

from collections.abc import Iterable

from ssh_cert_issuer.adapters.pem_keys import parse_private_key_pem
from ssh_cert_issuer.adapters.ssh_signer import (
    CaSigner,
    new_signer,
    parse_public_key,
    sign_certificate,
)
from ssh_cert_issuer.domain.models import CertificateKind, CertificateTemplate, IssuedCertificate
from ssh_cert_issuer.domain.ports import Clock, SerialSource
from ssh_cert_issuer.railway import ErrorCode, Result

SERIAL_NUMBER_LIMIT = 1 << 128
_UINT64_MASK = (1 << 64) - 1
_SECONDS_PER_HOUR = 3600


def draw_serial(serial_source: SerialSource) -> Result[int]:
    """
    Draw a certificate serial number.

    The draw is uniform over [0, 2**128); the certificate keeps its low
    64 bits, the width of the OpenSSH serial field.
    """
    return Result.from_computation(
        lambda: serial_source.draw(SERIAL_NUMBER_LIMIT) & _UINT64_MASK,
        ErrorCode.RANDOM_SOURCE_EXHAUSTED,
        "failed to generate serial number",
    )


def _as_options(names: Iterable[str] | None) -> dict[str, str]:
    """Option names become keys with an empty value."""
    return {name: "" for name in names or ()}


def build_template(
    key_id: str,
    validity_period_hours: int,
    valid_principals: Iterable[str] | None,
    critical_options: Iterable[str] | None,
    extensions: Iterable[str] | None,
    kind: CertificateKind,
    clock: Clock,
    serial_source: SerialSource,
) -> Result[CertificateTemplate]:
    """
    Assemble the certificate template for one issuance.

    valid_after is "now" from the clock, truncated to whole seconds;
    valid_before is valid_after plus the validity period. A zero-hour period
    is legal and yields an already expired certificate.
    """
    now = clock.now()
    valid_after = int(now.timestamp())
    valid_before = valid_after + validity_period_hours * _SECONDS_PER_HOUR

    return draw_serial(serial_source).map(
        lambda serial: CertificateTemplate(
            key_id=key_id,
            valid_after=valid_after,
            valid_before=valid_before,
            serial=serial,
            kind=kind,
            valid_principals=tuple(valid_principals or ()),
            critical_options=_as_options(critical_options),
            extensions=_as_options(extensions),
        )
    )


def issue_certificate(
    ca_private_key_pem: str,
    public_key_openssh: str,
    validity_period_hours: int,
    key_id: str,
    valid_principals: Iterable[str] | None,
    critical_options: Iterable[str] | None,
    extensions: Iterable[str] | None,
    kind: CertificateKind,
    clock: Clock,
    serial_source: SerialSource,
) -> Result[IssuedCertificate]:
    """
    Execute the full issuance railway.

    Flow:
      1. Parse the CA private key PEM
      2. Wrap it into a signer
      3. Build the template (validity window, serial, principals, options)
      4. Parse the public key to certify
      5. Sign

    Returns Result[IssuedCertificate] on success, or the failure of the
    first stage that failed.
    """

    def _sign_with(signer: CaSigner) -> Result[IssuedCertificate]:
        template = build_template(
            key_id,
            validity_period_hours,
            valid_principals,
            critical_options,
            extensions,
            kind,
            clock,
            serial_source,
        )
        return Result.combine(
            template,
            parse_public_key(public_key_openssh),
            lambda t, public_key: (t, public_key),
        ).flat_map(lambda pair: sign_certificate(pair[0], signer, pair[1]))

    return (
        parse_private_key_pem(ca_private_key_pem)
        .flat_map(new_signer)
        .flat_map(_sign_with)
    )
