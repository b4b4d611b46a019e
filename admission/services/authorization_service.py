"""Role and relationship based authorization.

A rule admits a caller through either of two independent paths:

* role path: the caller's role satisfies the rule's minimum role
  (SUPERADMIN > ADMIN > USER, and SUPERADMIN passes every rule);
* relationship path: a predicate over pre-loaded resource facts holds
  (the caller owns, belongs to, or authored the resource, or is the target
  user).

The evaluator never loads data. Callers hand it a :class:`ResourceContext`
with whatever facts the rule's predicate needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Union

from admission.services.identity_service import AuthenticatedIdentity, Identity, Role, hash_subject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceContext:
    """Facts about the target resource, supplied by business logic.

    Attributes:
        target_user_id: Account the operation acts on (for "self" checks).
        owner_id: Owner of the resource or of its parent project.
        member_ids: Members of the resource's project.
        author_id: Author of a piece of content (e.g., a comment).
    """

    target_user_id: int | str | None = None
    owner_id: int | str | None = None
    member_ids: frozenset[int | str] = field(default_factory=frozenset)
    author_id: int | str | None = None


RelationshipPredicate = Callable[[AuthenticatedIdentity, ResourceContext], bool]


def is_self(identity: AuthenticatedIdentity, context: ResourceContext) -> bool:
    return context.target_user_id is not None and identity.user_id == context.target_user_id


def is_resource_owner(identity: AuthenticatedIdentity, context: ResourceContext) -> bool:
    return context.owner_id is not None and identity.user_id == context.owner_id


def is_resource_member(identity: AuthenticatedIdentity, context: ResourceContext) -> bool:
    return identity.user_id in context.member_ids


def is_content_author(identity: AuthenticatedIdentity, context: ResourceContext) -> bool:
    return context.author_id is not None and identity.user_id == context.author_id


def is_owner_or_member(identity: AuthenticatedIdentity, context: ResourceContext) -> bool:
    """Task access: the caller owns the task's project or is a member of it."""
    return is_resource_owner(identity, context) or is_resource_member(identity, context)


RELATIONSHIP_PREDICATES: dict[str, RelationshipPredicate] = {
    "self": is_self,
    "owner": is_resource_owner,
    "member": is_resource_member,
    "author": is_content_author,
    "owner_or_member": is_owner_or_member,
}


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_ROLE = "insufficient role"
    NOT_RESOURCE_RELATED = "not resource-related"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "AuthorizationDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "AuthorizationDecision":
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class AuthorizationRule:
    """Access requirement declared for an operation.

    Attributes:
        minimum_role: Lowest role admitted through the role path; None means
            the role path is closed (and the rule is public when no
            relationship is declared either).
        relationship: Registered predicate name or a callable predicate.
    """

    minimum_role: Role | None = None
    relationship: Union[str, RelationshipPredicate, None] = None

    def __post_init__(self) -> None:
        if isinstance(self.minimum_role, str) and not isinstance(self.minimum_role, Role):
            object.__setattr__(self, "minimum_role", Role.parse(self.minimum_role))
        if isinstance(self.relationship, str) and self.relationship not in RELATIONSHIP_PREDICATES:
            raise ValueError(f"unknown relationship predicate: {self.relationship!r}")

    @property
    def is_public(self) -> bool:
        return self.minimum_role is None and self.relationship is None

    @property
    def predicate(self) -> RelationshipPredicate | None:
        if self.relationship is None:
            return None
        if isinstance(self.relationship, str):
            return RELATIONSHIP_PREDICATES[self.relationship]
        return self.relationship


PUBLIC = AuthorizationRule()


def authorize(
    identity: Identity,
    rule: AuthorizationRule,
    context: ResourceContext | None = None,
) -> AuthorizationDecision:
    """Decide whether identity may perform an operation guarded by rule.

    Exceptions raised by a predicate propagate to the caller.
    """
    if rule.is_public:
        return AuthorizationDecision.allow()

    if not isinstance(identity, AuthenticatedIdentity):
        return AuthorizationDecision.deny(DenyReason.UNAUTHENTICATED)

    if identity.role is Role.SUPERADMIN:
        return AuthorizationDecision.allow()

    if rule.minimum_role is not None and identity.role.satisfies(rule.minimum_role):
        return AuthorizationDecision.allow()

    predicate = rule.predicate
    if predicate is not None:
        if predicate(identity, context or ResourceContext()):
            return AuthorizationDecision.allow()
        reason = DenyReason.NOT_RESOURCE_RELATED
    else:
        reason = DenyReason.INSUFFICIENT_ROLE

    logger.info(
        "authorization.denied",
        extra={
            "subject_hash": hash_subject(identity.rate_limit_subject),
            "role": identity.role.value,
            "minimum_role": rule.minimum_role.value if rule.minimum_role else None,
            "reason": reason.value,
        },
    )
    return AuthorizationDecision.deny(reason)


class AuthorizationRuleTable:
    """Per-operation rules; operations without a rule are public."""

    def __init__(self, rules: Mapping[str, AuthorizationRule] | None = None) -> None:
        self._rules = dict(rules or {})

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AuthorizationRuleTable":
        """Build from ``{operation: {"minimum_role": ..., "relationship": ...}}``.

        Values may be mappings or objects exposing the same attributes.

        Raises:
            ValueError: On unknown role or relationship names.
        """
        rules: dict[str, AuthorizationRule] = {}
        for operation, entry in config.items():
            if isinstance(entry, Mapping):
                minimum_role = entry.get("minimum_role")
                relationship = entry.get("relationship")
            else:
                minimum_role = getattr(entry, "minimum_role", None)
                relationship = getattr(entry, "relationship", None)
            rules[operation] = AuthorizationRule(
                minimum_role=Role.parse(minimum_role) if minimum_role else None,
                relationship=relationship or None,
            )
        return cls(rules)

    def rule_for(self, operation: str) -> AuthorizationRule:
        return self._rules.get(operation, PUBLIC)


# Fields only visible to callers with at least the given role
_ADMIN_FIELDS = ("role", "created_at", "updated_at")
_SUPERADMIN_FIELDS = ("password_hash",)


def filter_user_fields(user_data: Mapping[str, Any] | None, identity: Identity) -> dict[str, Any] | None:
    """Return a copy of a user record trimmed to what the caller may see.

    - ``password_hash`` is visible to SUPERADMIN only.
    - ``role``, ``created_at`` and ``updated_at`` are visible to ADMIN and up.
    """
    if user_data is None:
        return None

    filtered = dict(user_data)
    role = identity.role if isinstance(identity, AuthenticatedIdentity) else None

    if role is not Role.SUPERADMIN:
        for name in _SUPERADMIN_FIELDS:
            filtered.pop(name, None)
    if role is None or not role.satisfies(Role.ADMIN):
        for name in _ADMIN_FIELDS:
            filtered.pop(name, None)
    return filtered
