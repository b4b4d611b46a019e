"""Credential verifier interfaces.

Token issuance lives outside this service. The identity resolver only needs
something that turns a bearer token into verified claims, or refuses to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerifiedClaims:
    """Claims extracted from a verified credential.

    Attributes:
        user_id: Account identifier declared by the issuer (None when absent).
        role: Role name as issued (any casing), None when absent.
        email: Optional account email.
    """

    user_id: int | str | None
    role: str | None = None
    email: str | None = None


class CredentialVerifier(ABC):
    """Interface for bearer credential verifiers."""

    @abstractmethod
    def verify(self, token: str) -> VerifiedClaims:
        """Verify a token signature and return its claims.

        Args:
            token: Raw bearer token (no ``Bearer`` prefix).

        Returns:
            VerifiedClaims read from the token payload.

        Raises:
            CredentialVerificationError: If the token is expired, tampered
                with, or otherwise fails verification.
        """
        raise NotImplementedError
