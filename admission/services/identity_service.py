"""Caller identity resolution.

Every request is resolved to exactly one identity before any other admission
step runs: an authenticated user (from a verified bearer token) or an
anonymous caller keyed by network origin. A missing or bad credential is not
an error at this stage; it degrades to anonymous and the authorization step
decides whether anonymous callers may proceed.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from admission.adapters.credentials.base import CredentialVerifier
from admission.core.errors import CredentialVerificationError

logger = logging.getLogger(__name__)

UNKNOWN_ORIGIN = "unknown"
BEARER_PREFIX = "Bearer "


class Role(str, Enum):
    """Closed set of account roles, ordered USER < ADMIN < SUPERADMIN."""

    USER = "USER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @classmethod
    def parse(cls, value: str | "Role") -> "Role":
        """Parse a role name in any casing.

        Raises:
            ValueError: If the value does not name a known role.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise ValueError(f"invalid role: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"invalid role: {value!r}") from None

    def satisfies(self, required: "Role") -> bool:
        return self.rank >= required.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank


_ROLE_RANK = {Role.USER: 0, Role.ADMIN: 1, Role.SUPERADMIN: 2}


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Caller that presented a verified credential."""

    user_id: int | str
    role: Role

    @property
    def rate_limit_subject(self) -> str:
        return f"user:{self.user_id}"

    @property
    def client_type(self) -> str:
        return "user"

    @property
    def client_identifier(self) -> str:
        return str(self.user_id)

    @property
    def is_admin(self) -> bool:
        return self.role.satisfies(Role.ADMIN)


@dataclass(frozen=True)
class AnonymousIdentity:
    """Caller without a usable credential, keyed by network origin."""

    ip_address: str = UNKNOWN_ORIGIN

    @property
    def rate_limit_subject(self) -> str:
        return f"ip:{self.ip_address}"

    @property
    def client_type(self) -> str:
        return "guest"

    @property
    def client_identifier(self) -> str:
        return self.ip_address

    @property
    def is_admin(self) -> bool:
        return False


Identity = Union[AuthenticatedIdentity, AnonymousIdentity]


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token carried by an ``Authorization: Bearer`` header.

    Examples:
        >>> extract_bearer_token("Bearer abc.def.ghi")
        'abc.def.ghi'
        >>> extract_bearer_token("Basic dXNlcjpwYXNz") is None
        True
        >>> extract_bearer_token(None) is None
        True
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def _is_base64_segment(segment: str) -> bool:
    padded = segment + "=" * (-len(segment) % 4)
    try:
        base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError):
        return False
    return True


def is_well_formed_token(token: str | None, *, min_length: int = 10) -> bool:
    """Structural pre-check applied before signature verification.

    A well-formed token is non-empty, has exactly three dot-separated
    segments (header.payload.signature), each non-empty segment decodes as
    base64url, and the whole token is at least ``min_length`` characters.
    """
    if not token:
        return False
    parts = token.split(".")
    if len(parts) != 3:
        return False
    if not all(_is_base64_segment(part) for part in parts if part):
        return False
    return len(token) >= min_length


def hash_subject(subject: str) -> str:
    """Hash an identity subject for logging without exposing it."""
    return hashlib.sha256(subject.encode()).hexdigest()[:16]


class IdentityResolver:
    """Resolve request credentials into an :data:`Identity`.

    The resolver never raises for credential problems: absent, malformed or
    unverifiable credentials all resolve to :class:`AnonymousIdentity`.
    """

    def __init__(self, verifier: CredentialVerifier, *, min_token_length: int = 10) -> None:
        if min_token_length < 1:
            raise ValueError("min_token_length must be >= 1")
        self._verifier = verifier
        self._min_token_length = min_token_length

    def resolve(self, credential: str | None, request_origin: str | None) -> Identity:
        """Resolve a bearer credential and network origin to an identity.

        Args:
            credential: Bearer token without the ``Bearer`` prefix, or None.
            request_origin: Caller IP address, or None when unknown.

        Returns:
            AuthenticatedIdentity when the credential verifies and carries a
            user id and a known role; otherwise AnonymousIdentity.
        """
        anonymous = AnonymousIdentity(request_origin or UNKNOWN_ORIGIN)

        if credential is None:
            return anonymous

        if not is_well_formed_token(credential, min_length=self._min_token_length):
            logger.warning(
                "identity.anonymous_fallback",
                extra={"reason": "malformed_token", "token_length": len(credential)},
            )
            return anonymous

        try:
            claims = self._verifier.verify(credential)
        except CredentialVerificationError as exc:
            logger.warning(
                "identity.anonymous_fallback",
                extra={"reason": exc.code},
            )
            return anonymous

        if claims.user_id is None or claims.user_id == "":
            logger.warning(
                "identity.anonymous_fallback",
                extra={"reason": "missing_user_id"},
            )
            return anonymous

        try:
            role = Role.parse(claims.role) if claims.role is not None else Role.USER
        except ValueError:
            logger.warning(
                "identity.anonymous_fallback",
                extra={"reason": "unknown_role", "user_id": claims.user_id},
            )
            return anonymous

        return AuthenticatedIdentity(user_id=claims.user_id, role=role)
