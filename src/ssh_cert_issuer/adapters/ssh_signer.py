"""
SSH signer adapter — turns a certificate template into a signed certificate.

Adapter layer — wraps cryptography's OpenSSH certificate support:
  - load_ssh_public_key: the key being certified, given in authorized-key form
  - SSHCertificateBuilder: certificate fields + CA signature

The CA key is first wrapped into a CaSigner. Building the signer checks that
the key is one the OpenSSH certificate format can sign with (RSA, Ed25519,
ECDSA on NIST P-256/P-384/P-521); signing then only fails on template or
target-key problems.

Signature randomness (ECDSA nonces) is drawn by cryptography from the
OpenSSL CSPRNG.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    SSHCertificate,
    SSHCertificateBuilder,
    load_ssh_public_key,
)
from cryptography.hazmat.primitives.serialization.ssh import (
    SSHCertPrivateKeyTypes,
    SSHCertPublicKeyTypes,
)

from ssh_cert_issuer.domain.models import (
    Algorithm,
    CertificateTemplate,
    IssuedCertificate,
    ParsedPrivateKey,
)
from ssh_cert_issuer.railway import ErrorCode, Result

log = structlog.get_logger()

_SSH_ECDSA_KEY_TYPES = {
    "secp256r1": "ecdsa-sha2-nistp256",
    "secp384r1": "ecdsa-sha2-nistp384",
    "secp521r1": "ecdsa-sha2-nistp521",
}


@dataclass(frozen=True, slots=True)
class CaSigner:
    """A CA private key the OpenSSH certificate format can sign with."""

    private_key: SSHCertPrivateKeyTypes = field(repr=False)
    algorithm: Algorithm
    signature_type: str


def new_signer(parsed: ParsedPrivateKey) -> Result[CaSigner]:
    """
    Wrap a parsed CA private key into a signing capability.

    Returns Result.failure(SIGNER_CONSTRUCTION_FAILED) for keys OpenSSH
    certificates cannot carry a signature from, e.g. EC keys on P-224.
    """
    key = parsed.key
    match key:
        case rsa.RSAPrivateKey():
            signature_type = "rsa-sha2-512"
        case ed25519.Ed25519PrivateKey():
            signature_type = "ssh-ed25519"
        case ec.EllipticCurvePrivateKey() if key.curve.name in _SSH_ECDSA_KEY_TYPES:
            signature_type = _SSH_ECDSA_KEY_TYPES[key.curve.name]
        case ec.EllipticCurvePrivateKey():
            return Result.failure(
                ErrorCode.SIGNER_CONSTRUCTION_FAILED,
                f"failed to create signer with private key: unsupported curve {key.curve.name}",
                details={"algorithm": parsed.algorithm.value, "curve": key.curve.name},
            )
        case _:
            return Result.failure(
                ErrorCode.SIGNER_CONSTRUCTION_FAILED,
                f"failed to create signer with private key of type {type(key).__name__}",
                details={"algorithm": parsed.algorithm.value},
            )
    return Result.success(CaSigner(key, parsed.algorithm, signature_type))


def parse_public_key(public_key_openssh: str) -> Result[SSHCertPublicKeyTypes]:
    """Parse the key to certify from an authorized-key line ("<type> <base64> [comment]")."""
    return Result.from_computation(
        lambda: load_ssh_public_key(public_key_openssh.strip().encode("utf-8")),
        ErrorCode.PUBLIC_KEY_PARSE_FAILED,
        "failed to parse public key in authorized-key format",
    )


def _build_certificate(
    template: CertificateTemplate,
    signer: CaSigner,
    public_key: SSHCertPublicKeyTypes,
) -> SSHCertificate:
    """Populate the builder from the template and sign. May raise."""
    builder = (
        SSHCertificateBuilder()
        .public_key(public_key)
        .serial(template.serial)
        .type(template.kind.ssh_type)
        .key_id(template.key_id.encode("utf-8"))
        .valid_after(template.valid_after)
        .valid_before(template.valid_before)
    )

    # An empty principal list is encoded the same way as "valid for all".
    if template.valid_principals:
        builder = builder.valid_principals([p.encode("utf-8") for p in template.valid_principals])
    else:
        builder = builder.valid_for_all_principals()

    for name, value in template.critical_options.items():
        builder = builder.add_critical_option(name.encode("utf-8"), value.encode("utf-8"))
    for name, value in template.extensions.items():
        builder = builder.add_extension(name.encode("utf-8"), value.encode("utf-8"))

    return builder.sign(signer.private_key)


def sign_certificate(
    template: CertificateTemplate,
    signer: CaSigner,
    public_key: SSHCertPublicKeyTypes,
) -> Result[IssuedCertificate]:
    """
    Sign the template for the given public key.

    Returns Result[IssuedCertificate] whose authorized_key is the signed
    certificate as a newline-terminated authorized-key line.
    Returns Result.failure(SIGNING_FAILED) if the builder rejects the
    template or the signature cannot be produced.
    """
    return Result.from_computation(
        lambda: _build_certificate(template, signer, public_key),
        ErrorCode.SIGNING_FAILED,
        "failed to sign certificate",
        details={"key_id": template.key_id, "serial": str(template.serial)},
    ).map(
        lambda certificate: IssuedCertificate(
            template=template,
            ca_key_algorithm=signer.algorithm,
            certificate=certificate,
            authorized_key=certificate.public_bytes().decode("ascii") + "\n",
        )
    ).peek(
        lambda issued: log.info(
            "certificate.signed",
            kind=template.kind.value,
            key_id=template.key_id,
            serial=issued.id,
            signature_type=signer.signature_type,
        )
    )
