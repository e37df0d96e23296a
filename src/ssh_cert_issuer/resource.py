"""
Resource — lifecycle facade over issuance and renewal.

Maps the typed fields a host or user certificate resource exposes onto the
core operations, at the lifecycle points where they run:

  create       → issue a certificate, populate every computed field
  read         → refresh ready_for_renewal (never signs)
  update       → copy in-place changes (key_id, early_renewal_hours)
  modify_plan  → renewal decision + attribute changes that force replacement

Requests are validated by pydantic at this boundary (non-negative hours),
so the core never sees invalid numbers.
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer

from ssh_cert_issuer.adapters.clock import SystemClock
from ssh_cert_issuer.adapters.serials import SecretsSerialSource
from ssh_cert_issuer.domain.models import Algorithm, CertificateKind, IssuedCertificate
from ssh_cert_issuer.domain.ports import Clock, SerialSource
from ssh_cert_issuer.issuance import issue_certificate
from ssh_cert_issuer.railway import LoggingExecutionContext, Result
from ssh_cert_issuer.renewal import PlanModification, plan_renewal, refresh_renewal

log = structlog.get_logger()

# Any change to one of these attributes produces a brand-new certificate.
REPLACE_ON_CHANGE = (
    "public_key_openssh",
    "validity_period_hours",
    "valid_principals",
    "critical_options",
    "extensions",
)
CA_PRIVATE_KEY_ATTRIBUTE = "ca_private_key_pem"
MAX_VALID_PRINCIPALS = 256

_PEM_STRING = re.compile(
    r"-----BEGIN [A-Za-z ]+-----\n.+\n-----END [A-Za-z ]+-----\n?",
    re.DOTALL,
)


class CertificateRequest(BaseModel):
    """Caller-supplied fields of a certificate resource."""

    model_config = ConfigDict(frozen=True)

    ca_private_key_pem: SecretStr = Field(
        description="Private key of the CA used to sign the certificate, in PEM (RFC 1421) format",
    )
    public_key_openssh: str = Field(description="SSH public key to sign, in authorized keys format")
    validity_period_hours: int = Field(
        ge=0,
        description="Number of hours, after initial issuing, that the certificate will remain valid for",
    )
    key_id: str = Field(description="User or host identifier for the certificate")
    valid_principals: list[str] = Field(
        default_factory=list,
        max_length=MAX_VALID_PRINCIPALS,
        description=(
            "Principals the certificate is valid for; empty means every principal. "
            f"OpenSSH certificates carry at most {MAX_VALID_PRINCIPALS}"
        ),
    )
    critical_options: list[str] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    early_renewal_hours: int = Field(
        default=0,
        ge=0,
        description="Consider the certificate expired this many hours before its actual expiry",
    )

    @field_serializer("ca_private_key_pem", when_used="json")
    def _dump_ca_private_key_pem(self, value: SecretStr) -> str:
        # State documents must round-trip the key; repr() stays masked.
        return value.get_secret_value()


class CertificateState(CertificateRequest):
    """Stored record of an issued certificate: the request plus computed fields."""

    ca_key_algorithm: Algorithm | None = None
    cert_authorized_key: str | None = None
    validity_start_time: str | None = None
    validity_end_time: str | None = None
    id: str | None = None
    ready_for_renewal: bool = False

    @classmethod
    def from_issued(cls, request: CertificateRequest, issued: IssuedCertificate) -> CertificateState:
        return cls(
            **request.model_dump(include=set(CertificateRequest.model_fields)),
            ca_key_algorithm=issued.ca_key_algorithm,
            cert_authorized_key=issued.authorized_key,
            validity_start_time=issued.validity_start_time,
            validity_end_time=issued.validity_end_time,
            id=issued.id,
            ready_for_renewal=False,
        )


def ca_key_requires_replace(prior_pem: str, planned_pem: str) -> bool:
    """
    A changed CA key forces replacement when the stored value is a PEM string.

    Equality is textual: re-submitting the same key with different
    whitespace still counts as a change.
    """
    return planned_pem != prior_pem and _PEM_STRING.fullmatch(prior_pem) is not None


def replacement_triggers(prior: CertificateRequest, planned: CertificateRequest) -> tuple[str, ...]:
    """Names of the attributes whose change forces a new certificate."""
    triggers = [name for name in REPLACE_ON_CHANGE if getattr(prior, name) != getattr(planned, name)]
    if ca_key_requires_replace(
        prior.ca_private_key_pem.get_secret_value(),
        planned.ca_private_key_pem.get_secret_value(),
    ):
        triggers.append(CA_PRIVATE_KEY_ATTRIBUTE)
    return tuple(triggers)


class SshCertificateResource:
    """
    Host or user certificate resource.

    The certificate kind is fixed per instance. Clock and serial source
    default to the system clock and the OS CSPRNG.
    """

    def __init__(
        self,
        kind: CertificateKind,
        clock: Clock | None = None,
        serial_source: SerialSource | None = None,
    ) -> None:
        self.kind = kind
        self._clock = clock or SystemClock()
        self._serial_source = serial_source or SecretsSerialSource()
        operation = "IssueHostCertificate" if kind is CertificateKind.HOST else "IssueUserCertificate"
        self._issue_context = LoggingExecutionContext(operation=operation)

    @property
    def type_name(self) -> str:
        return self.kind.resource_type_name

    def create(self, request: CertificateRequest) -> Result[CertificateState]:
        """Issue a certificate. Either every computed field is set, or nothing is."""
        return self._issue_context.execute(
            lambda: issue_certificate(
                ca_private_key_pem=request.ca_private_key_pem.get_secret_value(),
                public_key_openssh=request.public_key_openssh,
                validity_period_hours=request.validity_period_hours,
                key_id=request.key_id,
                valid_principals=request.valid_principals,
                critical_options=request.critical_options,
                extensions=request.extensions,
                kind=self.kind,
                clock=self._clock,
                serial_source=self._serial_source,
            ).map(lambda issued: CertificateState.from_issued(request, issued))
        )

    def read(self, state: CertificateState) -> Result[CertificateState]:
        """Recompute ready_for_renewal; the stored certificate is left untouched."""
        return refresh_renewal(
            state.validity_end_time,
            state.early_renewal_hours,
            self._clock,
            current=state.ready_for_renewal,
        ).map(lambda ready: state.model_copy(update={"ready_for_renewal": ready}))

    def update(self, state: CertificateState, request: CertificateRequest) -> Result[CertificateState]:
        """
        Apply planned values in place. The signed certificate is kept;
        ready_for_renewal is recomputed against the new early_renewal_hours.
        """
        planned = {name: getattr(request, name) for name in CertificateRequest.model_fields}
        return self.read(state.model_copy(update=planned))

    def modify_plan(
        self,
        prior: CertificateState | None,
        planned: CertificateRequest,
    ) -> Result[PlanModification]:
        """
        Decide what the plan for `planned` must carry.

        Nothing is evaluated before the first issuance. Afterwards the plan
        replaces the resource when the certificate is due for renewal or when
        an attribute that is baked into the signed certificate changed.
        """
        if prior is None:
            return Result.success(PlanModification())

        triggers = replacement_triggers(prior, planned)

        def _merge(renewal: PlanModification) -> PlanModification:
            requires_replace = renewal.requires_replace + triggers
            if requires_replace:
                log.info(
                    "plan.requires_replace",
                    resource=self.type_name,
                    resource_id=prior.id,
                    attributes=list(requires_replace),
                )
                return PlanModification(ready_for_renewal=None, requires_replace=requires_replace)
            return renewal

        return plan_renewal(prior.validity_end_time, planned.early_renewal_hours, self._clock).map(_merge)


def host_cert_resource(
    clock: Clock | None = None,
    serial_source: SerialSource | None = None,
) -> SshCertificateResource:
    return SshCertificateResource(CertificateKind.HOST, clock, serial_source)


def user_cert_resource(
    clock: Clock | None = None,
    serial_source: SerialSource | None = None,
) -> SshCertificateResource:
    return SshCertificateResource(CertificateKind.USER, clock, serial_source)
