"""
PEM private key adapter — PEM unarmoring + private key decoding.

Adapter layer — decodes a CA private key given as PEM text using:
  - asn1crypto: PEM unarmoring and strict PKCS#1 / SEC1 ASN.1 structure parsing
  - cryptography (PyCA): typed private key objects used for signing

Pipeline:
  PEM text
    → asn1crypto: pem.unarmor() → (preamble, DER) of the FIRST block only
    → classify_preamble() → PEMPreamble
    → closed match over the preamble:
        RSA PRIVATE KEY → PKCS#1 decoder  → Algorithm.RSA
        EC PRIVATE KEY  → SEC1 decoder    → Algorithm.ECDSA
        PRIVATE KEY     → PKCS#8 decoder  → algorithm of the embedded key
    → ParsedPrivateKey (domain model)

Two independent decisions are made: the PEM header decides HOW to decode,
the decoded key decides the algorithm tag. A PKCS#8 header says nothing
about the algorithm inside it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog
from asn1crypto import keys as asn1_keys
from asn1crypto import pem as asn1_pem
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ssh_cert_issuer.domain.models import Algorithm, ParsedPrivateKey, PEMPreamble
from ssh_cert_issuer.railway import ErrorCode, Result

log = structlog.get_logger()

_PREAMBLES_BY_LABEL = {preamble.value: preamble for preamble in PEMPreamble}

# asn1crypto named curve → cryptography curve. SSH signing only accepts the
# NIST P-256/384/521 curves; the others still decode so the error is raised
# where a signer is built.
_EC_CURVES: dict[str, ec.EllipticCurve] = {
    "secp224r1": ec.SECP224R1(),
    "secp256r1": ec.SECP256R1(),
    "secp384r1": ec.SECP384R1(),
    "secp521r1": ec.SECP521R1(),
    "secp256k1": ec.SECP256K1(),
}

_PEM_END_LINE = re.compile(rb"-{4,5} ?END [A-Z0-9 ]+ ?-{4,5}[^\n]*\n?")


@dataclass(frozen=True, slots=True)
class _PemBlock:
    """First PEM block of the input and how much of the input it covered."""

    block_type: str
    der: bytes = field(repr=False)
    consumed_bytes: int
    remaining_bytes: int


# ─────────────────────── Preamble Classification ───────────────────────


def classify_preamble(block_type: str) -> Result[PEMPreamble]:
    """
    Map a PEM header label to a PEMPreamble.

    Matching is exact: near-matches and case variants are unsupported.
    """
    preamble = _PREAMBLES_BY_LABEL.get(block_type)
    if preamble is None:
        return Result.failure(
            ErrorCode.UNSUPPORTED_PREAMBLE,
            f"unsupported PEM preamble/type: {block_type}",
            details={"preamble": block_type},
        )
    return Result.success(preamble)


# ─────────────────────── PEM Unarmoring ───────────────────────


def _decode_pem_block(pem_bytes: bytes) -> Result[_PemBlock]:
    """Unarmor the first PEM block. Anything after it is ignored."""
    try:
        block_type, _headers, der = asn1_pem.unarmor(pem_bytes)
    except ValueError as e:
        return Result.failure(
            ErrorCode.MALFORMED_PEM,
            f"failed to decode PEM block: decoded bytes 0, undecoded {len(pem_bytes)}",
            e,
            details={"consumed_bytes": 0, "remaining_bytes": len(pem_bytes)},
        )

    end = _PEM_END_LINE.search(pem_bytes)
    consumed = end.end() if end else len(pem_bytes)
    remaining = len(pem_bytes) - consumed
    if pem_bytes[consumed:].strip():
        log.warning(
            "pem.trailing_data_ignored",
            preamble=block_type,
            consumed_bytes=consumed,
            remaining_bytes=remaining,
        )
    return Result.success(_PemBlock(block_type, der, consumed, remaining))


# ─────────────────────── Binary Key Decoders ───────────────────────


def _decode_pkcs1_rsa(der: bytes) -> ParsedPrivateKey:
    """Decode a PKCS#1 RSAPrivateKey structure."""
    fields = asn1_keys.RSAPrivateKey.load(der, strict=True).native
    numbers = rsa.RSAPrivateNumbers(
        p=fields["prime1"],
        q=fields["prime2"],
        d=fields["private_exponent"],
        dmp1=fields["exponent1"],
        dmq1=fields["exponent2"],
        iqmp=fields["coefficient"],
        public_numbers=rsa.RSAPublicNumbers(
            e=fields["public_exponent"],
            n=fields["modulus"],
        ),
    )
    return ParsedPrivateKey(numbers.private_key(), Algorithm.RSA, PEMPreamble.PRIVATE_KEY_RSA)


def _decode_sec1_ec(der: bytes) -> ParsedPrivateKey:
    """Decode a SEC1 ECPrivateKey structure carrying a named curve."""
    ec_key = asn1_keys.ECPrivateKey.load(der, strict=True)
    curve_name = ec_key["parameters"].native
    if not isinstance(curve_name, str) or curve_name not in _EC_CURVES:
        raise ValueError(f"unsupported or missing named curve: {curve_name!r}")
    private_key = ec.derive_private_key(ec_key["private_key"].native, _EC_CURVES[curve_name])
    return ParsedPrivateKey(private_key, Algorithm.ECDSA, PEMPreamble.PRIVATE_KEY_EC)


def _tag_pkcs8_key(private_key: object) -> Result[ParsedPrivateKey]:
    """Attach the algorithm tag to a key decoded from PKCS#8."""
    match private_key:
        case rsa.RSAPrivateKey():
            algorithm = Algorithm.RSA
        case ec.EllipticCurvePrivateKey():
            algorithm = Algorithm.ECDSA
        case ed25519.Ed25519PrivateKey():
            algorithm = Algorithm.ED25519
        case _:
            key_type = type(private_key).__name__
            return Result.failure(
                ErrorCode.UNSUPPORTED_KEY_TYPE,
                f"failed to determine key algorithm for private key of type {key_type}: "
                f"unsupported private key type",
                details={"preamble": PEMPreamble.PRIVATE_KEY_PKCS8.value, "key_type": key_type},
            )
    return Result.success(ParsedPrivateKey(private_key, algorithm, PEMPreamble.PRIVATE_KEY_PKCS8))


def _decode_failure_message(preamble: PEMPreamble) -> str:
    return f"failed to parse private key given PEM preamble '{preamble}'"


def _decode_private_key(preamble: PEMPreamble, der: bytes) -> Result[ParsedPrivateKey]:
    """Dispatch the DER body to the decoder registered for its preamble."""
    details = {"preamble": preamble.value}
    match preamble:
        case PEMPreamble.PRIVATE_KEY_RSA:
            return Result.from_computation(
                lambda: _decode_pkcs1_rsa(der),
                ErrorCode.KEY_DECODE_FAILED,
                _decode_failure_message(preamble),
                details,
            )
        case PEMPreamble.PRIVATE_KEY_EC:
            return Result.from_computation(
                lambda: _decode_sec1_ec(der),
                ErrorCode.KEY_DECODE_FAILED,
                _decode_failure_message(preamble),
                details,
            )
        case PEMPreamble.PRIVATE_KEY_PKCS8:
            return Result.from_computation(
                lambda: serialization.load_der_private_key(der, password=None),
                ErrorCode.KEY_DECODE_FAILED,
                _decode_failure_message(preamble),
                details,
            ).flat_map(_tag_pkcs8_key)
        case _:
            return Result.failure(
                ErrorCode.NO_PARSER_FOR_PREAMBLE,
                f"unable to determine parser for PEM preamble: {preamble}",
                details=details,
            )


# ─────────────────────── Public Parser ───────────────────────


def parse_private_key_pem(key_pem: bytes | str) -> Result[ParsedPrivateKey]:
    """
    Decode a CA private key from PEM text.

    Steps:
      1. Unarmor the first PEM block (MALFORMED_PEM if there is none)
      2. Classify its preamble (UNSUPPORTED_PREAMBLE)
      3. Decode the body (NO_PARSER_FOR_PREAMBLE, KEY_DECODE_FAILED)
      4. Tag the algorithm (UNSUPPORTED_KEY_TYPE)

    Returns Result[ParsedPrivateKey] on success.
    """
    pem_bytes = key_pem.encode("utf-8") if isinstance(key_pem, str) else key_pem

    return (
        _decode_pem_block(pem_bytes)
        .flat_map(
            lambda block: classify_preamble(block.block_type).flat_map(
                lambda preamble: _decode_private_key(preamble, block.der)
            )
        )
        .peek(
            lambda parsed: log.debug(
                "pem.private_key_parsed",
                preamble=parsed.preamble.value,
                algorithm=parsed.algorithm.value,
            )
        )
    )
