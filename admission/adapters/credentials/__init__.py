"""Credential verifier adapters - abstracts over token verification backends."""

from admission.adapters.credentials.base import CredentialVerifier, VerifiedClaims
from admission.adapters.credentials.factory import create_credential_verifier
from admission.adapters.credentials.jose_verifier import JoseCredentialVerifier

__all__ = [
    "CredentialVerifier",
    "JoseCredentialVerifier",
    "VerifiedClaims",
    "create_credential_verifier",
]
