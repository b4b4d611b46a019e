"""JWT verifier adapter backed by python-jose."""

from __future__ import annotations

from typing import Any, Sequence

from jose import ExpiredSignatureError, JWTError, jwt

from admission.adapters.credentials.base import CredentialVerifier, VerifiedClaims
from admission.core.errors import CredentialVerificationError


class JoseCredentialVerifier(CredentialVerifier):
    """Verify HMAC/RSA signed JWTs issued by the account service.

    Tokens carry ``userId``, ``role`` and ``email`` claims.
    """

    def __init__(self, secret: str, *, algorithms: Sequence[str] = ("HS256",)) -> None:
        if not secret:
            raise ValueError("secret must be a non-empty string")
        self._secret = secret
        self._algorithms = list(algorithms)

    def verify(self, token: str) -> VerifiedClaims:
        try:
            payload: dict[str, Any] = jwt.decode(token, self._secret, algorithms=self._algorithms)
        except ExpiredSignatureError as exc:
            raise CredentialVerificationError(
                code="token_expired",
                message="Token expired",
            ) from exc
        except JWTError as exc:
            raise CredentialVerificationError(
                code="invalid_token",
                message="Invalid token",
            ) from exc

        return VerifiedClaims(
            user_id=payload.get("userId"),
            role=payload.get("role"),
            email=payload.get("email"),
        )
