"""
ssh_cert_issuer — short-lived SSH host and user certificates.

Signs a requester-supplied SSH public key with a CA private key given as PEM,
and decides when an issued certificate is due for reissuance.

Built on the Railway-Oriented Programming (ROP) Result type for
explicit, composable error handling.
"""

__version__ = "0.1.0"
