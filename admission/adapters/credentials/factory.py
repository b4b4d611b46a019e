"""Factory for the configured credential verifier."""

from admission.adapters.credentials.base import CredentialVerifier
from admission.adapters.credentials.jose_verifier import JoseCredentialVerifier
from admission.core.config import settings
from admission.core.errors import ValidationAppError


def create_credential_verifier() -> CredentialVerifier:
    """Build the verifier described by ``settings.auth``.

    Raises:
        ValidationAppError: If no verification secret is configured.
    """
    if not settings.auth.jwt_secret:
        raise ValidationAppError(
            code="auth_missing_secret",
            message="Token verification requires AUTH_JWT_SECRET",
        )
    return JoseCredentialVerifier(
        settings.auth.jwt_secret,
        algorithms=[settings.auth.jwt_algorithm],
    )
