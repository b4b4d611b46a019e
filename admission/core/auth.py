"""Identity and authorization dependencies for FastAPI routes.

This module wires the identity resolver and the authorization evaluator into
the HTTP layer.

Design principles:
- Identity is resolved once per request and cached on ``request.state``
- Missing or bad credentials resolve to an anonymous identity; only the
  authorization step turns that into an AuthenticationAppError (401)
- Resource facts for relationship rules come from a caller-supplied
  dependency so the evaluator never touches storage

Usage:
    @router.get("/projects/{project_id}", dependencies=[Depends(require_role(Role.USER))])
    async def get_project(...): ...
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, NoReturn

from fastapi import Depends, Request

from admission.adapters.credentials.factory import create_credential_verifier
from admission.core.config import settings
from admission.core.constants import FORBIDDEN, UNAUTHENTICATED
from admission.core.errors import AuthenticationAppError, AuthorizationAppError
from admission.core.logging import set_client_type
from admission.services.authorization_service import (
    AuthorizationRule,
    AuthorizationRuleTable,
    DenyReason,
    RelationshipPredicate,
    ResourceContext,
    authorize,
)
from admission.services.identity_service import (
    AuthenticatedIdentity,
    Identity,
    IdentityResolver,
    Role,
    extract_bearer_token,
)
from admission.services.rate_limit_service import normalize_operation, normalize_template

logger = logging.getLogger(__name__)

ContextProvider = Callable[..., Awaitable[ResourceContext] | ResourceContext]

_resolver: IdentityResolver | None = None
_resolver_config: tuple[str, str, int] | None = None


def get_identity_resolver() -> IdentityResolver:
    """Return a process-wide identity resolver.

    Rebuilt when the auth configuration changes (primarily in tests).
    """

    global _resolver, _resolver_config

    config = (
        settings.auth.jwt_secret,
        settings.auth.jwt_algorithm,
        settings.auth.min_token_length,
    )

    if _resolver is None or _resolver_config != config:
        _resolver = IdentityResolver(
            create_credential_verifier(),
            min_token_length=settings.auth.min_token_length,
        )
        _resolver_config = config

    return _resolver


def client_origin(request: Request) -> str | None:
    return request.client.host if request.client else None


async def resolve_identity(request: Request) -> Identity:
    """FastAPI dependency returning the caller's identity.

    The result is cached on ``request.state.identity`` so rate limiting and
    authorization dependencies on the same request share one resolution.
    """

    cached = getattr(request.state, "identity", None)
    if cached is not None:
        return cached

    token = extract_bearer_token(request.headers.get("Authorization"))
    identity = get_identity_resolver().resolve(token, client_origin(request))
    request.state.identity = identity
    set_client_type(identity.client_type)
    return identity


def raise_for_denial(reason: DenyReason | None) -> NoReturn:
    """Translate a denial into the matching application error.

    Raises:
        AuthenticationAppError: For anonymous callers (rendered as 401).
        AuthorizationAppError: For every other denial (rendered as 403).
    """

    if reason is DenyReason.UNAUTHENTICATED:
        raise AuthenticationAppError(
            code=UNAUTHENTICATED,
            message="Authentication required",
        )
    raise AuthorizationAppError(
        code=FORBIDDEN,
        message="Insufficient permissions",
        details={"reason": reason.value} if reason else None,
    )


async def _no_context() -> ResourceContext:
    return ResourceContext()


def require_role(
    minimum_role: Role | str | None,
    relationship: str | RelationshipPredicate | None = None,
    context_provider: ContextProvider | None = None,
) -> Callable[..., Awaitable[Identity]]:
    """Build a dependency enforcing an authorization rule.

    Args:
        minimum_role: Lowest role admitted by role alone, or None.
        relationship: Predicate name (``owner``, ``member``, ``self``,
            ``author``, ``owner_or_member``) or a callable predicate.
        context_provider: Dependency returning the ResourceContext for the
            current request. Required for a relationship check to pass.

    Returns:
        Dependency yielding the authorized identity.

    Raises:
        ValueError: If the role or predicate name is unknown.
    """

    rule = AuthorizationRule(
        minimum_role=Role.parse(minimum_role) if minimum_role is not None else None,
        relationship=relationship,
    )
    provider = context_provider or _no_context

    async def dependency(
        identity: Identity = Depends(resolve_identity),
        context: ResourceContext = Depends(provider),
    ) -> Identity:
        decision = authorize(identity, rule, context)
        if decision.allowed:
            return identity

        logger.warning(
            "auth.denied",
            extra={
                "client_type": identity.client_type,
                "reason": decision.reason.value if decision.reason else None,
                "minimum_role": rule.minimum_role.value if rule.minimum_role else None,
            },
        )
        raise_for_denial(decision.reason)

    return dependency


require_user = require_role(Role.USER)
require_admin = require_role(Role.ADMIN)
require_superadmin = require_role(Role.SUPERADMIN)


def identity_payload(identity: Identity) -> dict[str, Any]:
    """Serializable view of an identity for introspection endpoints."""

    if isinstance(identity, AuthenticatedIdentity):
        return {
            "authenticated": True,
            "user_id": identity.user_id,
            "role": identity.role.value,
        }
    return {
        "authenticated": False,
        "ip_address": identity.client_identifier,
    }


_rule_table: AuthorizationRuleTable | None = None
_rule_table_config: str | None = None


def get_authorization_rules() -> AuthorizationRuleTable:
    """Return the per-operation rule table built from ``APP_AUTHORIZATION_RULES``.

    Operation names are normalized like rate limit operations, so
    ``"PUT /api/projects/:projectId"`` guards ``PUT /api/projects/7``.
    """

    global _rule_table, _rule_table_config

    rules = settings.app.authorization_rules
    config = repr(sorted((name, rule.model_dump_json()) for name, rule in rules.items()))

    if _rule_table is None or _rule_table_config != config:
        _rule_table = AuthorizationRuleTable.from_config(
            {normalize_template(name): rule for name, rule in rules.items()}
        )
        _rule_table_config = config

    return _rule_table


async def enforce_authorization(
    request: Request,
    identity: Identity = Depends(resolve_identity),
) -> Identity:
    """FastAPI dependency applying the configured rule for the current operation.

    Operations without a configured rule are public. Relationship rules read
    their facts from ``request.state.resource_context``, which a preceding
    dependency of the route is expected to set.
    """

    operation = normalize_operation(request.method, request.url.path)
    rule = get_authorization_rules().rule_for(operation)
    context = getattr(request.state, "resource_context", None) or ResourceContext()

    decision = authorize(identity, rule, context)
    if decision.allowed:
        return identity

    logger.warning(
        "auth.denied",
        extra={
            "client_type": identity.client_type,
            "operation": operation,
            "reason": decision.reason.value if decision.reason else None,
        },
    )
    raise_for_denial(decision.reason)
