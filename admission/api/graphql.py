"""Admission decorators for GraphQL resolvers.

Framework-neutral wrappers for resolvers with the conventional
``(source, info, **args)`` signature, as used by graphql-core based servers.
``info.context`` may be a mapping or an object; it must expose either an
``identity`` or a ``request`` (Starlette/FastAPI request) from which the
identity is resolved and cached.

Rejections raise :class:`AdmissionGraphQLError`. Its ``extensions`` mapping is
picked up by graphql-core when the error is wrapped, so clients receive a
machine-readable ``code``.

Usage:
    @auth(requires="ADMIN")
    @rate_limit(max=20, window=300)
    async def resolve_update_role(source, info, user_id, role): ...

Whole documents are bounded by :func:`check_query_limits`, or by
:func:`query_limits_rule` plugged into graphql-core validation.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from graphql import (
    ASTValidationRule,
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    InlineFragmentNode,
    OperationDefinitionNode,
    OperationType,
    SelectionNode,
    parse,
)

from admission.core.auth import client_origin, get_identity_resolver
from admission.core.config import settings
from admission.core.constants import (
    COMPLEXITY_NESTED,
    COMPLEXITY_SCALAR,
    FIELD_COMPLEXITY,
    FIELD_TYPE_MAP,
    FORBIDDEN,
    QUERY_TOO_COMPLEX,
    QUERY_TOO_DEEP,
    RATE_LIMIT_EXCEEDED,
    UNAUTHENTICATED,
)
from admission.core.errors import AppError
from admission.core.pagination import default_pagination_policy
from admission.core.rate_limit import get_rate_limiter
from admission.services.authorization_service import (
    AuthorizationRule,
    DenyReason,
    ResourceContext,
    authorize,
)
from admission.services.identity_service import (
    AnonymousIdentity,
    Identity,
    Role,
    extract_bearer_token,
)
from admission.services.pagination_service import (
    PaginationPolicy,
    PaginationRequest,
    parse_pagination,
)
from admission.services.rate_limit_service import RateLimitPolicy

logger = logging.getLogger(__name__)

Resolver = Callable[..., Any]


class AdmissionGraphQLError(AppError):
    """Error surfaced to GraphQL clients with ``extensions``."""

    @property
    def extensions(self) -> dict[str, Any]:
        return {"code": self.code, **dict(self.details or {})}


def _context_get(context: Any, name: str) -> Any:
    if isinstance(context, Mapping):
        return context.get(name)
    return getattr(context, name, None)


def _context_set(context: Any, name: str, value: Any) -> None:
    if isinstance(context, Mapping):
        context[name] = value  # type: ignore[index]
    else:
        setattr(context, name, value)


def identity_from_context(context: Any) -> Identity:
    """Return the caller identity for a GraphQL context, resolving it once."""

    identity = _context_get(context, "identity")
    if identity is not None:
        return identity

    request = _context_get(context, "request")
    if request is None:
        identity = AnonymousIdentity()
    else:
        token = extract_bearer_token(request.headers.get("Authorization"))
        identity = get_identity_resolver().resolve(token, client_origin(request))

    _context_set(context, "identity", identity)
    return identity


async def _call(resolver: Resolver, *args: Any, **kwargs: Any) -> Any:
    result = resolver(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def rate_limit(*, max: int, window: int) -> Callable[[Resolver], Resolver]:  # noqa: A002
    """Limit a field to ``max`` calls per ``window`` seconds per caller.

    The key is the caller subject plus the field name, so the same caller
    has an independent quota on every decorated field.
    """

    policy = RateLimitPolicy(limit=max, window_seconds=window)

    def decorator(resolver: Resolver) -> Resolver:
        @functools.wraps(resolver)
        async def wrapper(source: Any, info: Any, **kwargs: Any) -> Any:
            if settings.rate_limit.enabled:
                identity = identity_from_context(info.context)
                result = await get_rate_limiter().admit_request(
                    identity, info.field_name, policy=policy
                )
                if not result.allowed:
                    raise AdmissionGraphQLError(
                        code=RATE_LIMIT_EXCEEDED,
                        message=f"Rate limit exceeded. Maximum {max} requests per {window} seconds.",
                        details={
                            "clientType": identity.client_type,
                            "clientIdentifier": identity.client_identifier,
                            "fieldName": info.field_name,
                            "max": max,
                            "window": window,
                            "retryAfter": result.retry_after_seconds or 0,
                        },
                    )
            return await _call(resolver, source, info, **kwargs)

        return wrapper

    return decorator


def auth(
    *,
    requires: Role | str,
    relationship: str | None = None,
    context_factory: Callable[..., ResourceContext] | None = None,
) -> Callable[[Resolver], Resolver]:
    """Require a minimum role (or a relationship) to resolve a field.

    Args:
        requires: Minimum role name, e.g. ``"USER"`` or ``"ADMIN"``.
        relationship: Optional predicate name admitting callers related to
            the resource regardless of role.
        context_factory: Builds the ResourceContext from ``(source, info,
            **args)``; used only when ``relationship`` is set.
    """

    rule = AuthorizationRule(minimum_role=Role.parse(requires), relationship=relationship)

    def decorator(resolver: Resolver) -> Resolver:
        @functools.wraps(resolver)
        async def wrapper(source: Any, info: Any, **kwargs: Any) -> Any:
            identity = identity_from_context(info.context)
            resource = ResourceContext()
            if relationship is not None and context_factory is not None:
                resource = await _call(context_factory, source, info, **kwargs)

            decision = authorize(identity, rule, resource)
            if not decision.allowed:
                logger.warning(
                    "auth.denied",
                    extra={
                        "field_name": info.field_name,
                        "client_type": identity.client_type,
                        "reason": decision.reason.value if decision.reason else None,
                    },
                )
                if decision.reason is DenyReason.UNAUTHENTICATED:
                    raise AdmissionGraphQLError(code=UNAUTHENTICATED, message="Not authenticated")
                raise AdmissionGraphQLError(code=FORBIDDEN, message="Not authorized")
            return await _call(resolver, source, info, **kwargs)

        return wrapper

    return decorator


def parse_pagination_input(
    pagination: Mapping[str, Any] | None,
    policy: PaginationPolicy | None = None,
) -> PaginationRequest:
    """Parse a GraphQL ``PaginationInput`` argument (``{cursor, limit}``)."""

    return parse_pagination(pagination, policy or default_pagination_policy())


_ROOT_TYPES = {
    OperationType.QUERY: "Query",
    OperationType.MUTATION: "Mutation",
    OperationType.SUBSCRIPTION: "Subscription",
}


@dataclass(frozen=True)
class QueryCost:
    complexity: int
    depth: int


def measure_query(document: DocumentNode) -> QueryCost:
    """Weigh every operation in ``document``.

    A field costs its weight in ``FIELD_COMPLEXITY`` for the parent type
    (scalar weight when unknown) plus ``COMPLEXITY_NESTED`` per level below
    the root selection. Depth is the deepest chain of nested fields. Inline
    fragments keep the enclosing type; named fragments are expanded once per
    path.
    """

    fragments = {
        definition.name.value: definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }
    complexity = 0
    max_depth = 0

    def visit(
        selections: Iterable[SelectionNode],
        parent_type: str | None,
        depth: int,
        expanded: frozenset[str],
    ) -> None:
        nonlocal complexity, max_depth
        for selection in selections:
            if isinstance(selection, FieldNode):
                name = selection.name.value
                weight = FIELD_COMPLEXITY.get(parent_type or "", {}).get(name, COMPLEXITY_SCALAR)
                complexity += weight + depth * COMPLEXITY_NESTED
                max_depth = max(max_depth, depth + 1)
                if selection.selection_set is not None:
                    visit(
                        selection.selection_set.selections,
                        FIELD_TYPE_MAP.get(name),
                        depth + 1,
                        expanded,
                    )
            elif isinstance(selection, InlineFragmentNode):
                visit(selection.selection_set.selections, parent_type, depth, expanded)
            elif isinstance(selection, FragmentSpreadNode):
                name = selection.name.value
                fragment = fragments.get(name)
                if fragment is None or name in expanded:
                    continue
                visit(fragment.selection_set.selections, parent_type, depth, expanded | {name})

    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            visit(
                definition.selection_set.selections,
                _ROOT_TYPES[definition.operation],
                0,
                frozenset(),
            )

    return QueryCost(complexity=complexity, depth=max_depth)


def check_query_limits(
    document: DocumentNode | str,
    *,
    max_complexity: int | None = None,
    max_depth: int | None = None,
) -> QueryCost:
    """Reject documents above the complexity or depth limit.

    Limits default to ``settings.graphql``. Complexity is checked before
    depth. Syntax errors from parsing a string propagate unchanged.
    """

    if isinstance(document, str):
        document = parse(document)
    max_complexity = max_complexity or settings.graphql.max_complexity
    max_depth = max_depth or settings.graphql.max_depth

    cost = measure_query(document)
    logger.debug(
        "graphql.query_cost",
        extra={"complexity": cost.complexity, "depth": cost.depth},
    )

    if cost.complexity > max_complexity:
        logger.warning(
            "graphql.query_too_complex",
            extra={"complexity": cost.complexity, "max_complexity": max_complexity},
        )
        raise AdmissionGraphQLError(
            code=QUERY_TOO_COMPLEX,
            message=(
                f"Query is too complex: {cost.complexity}. "
                f"Maximum allowed complexity is {max_complexity}"
            ),
            details={"complexity": cost.complexity, "max": max_complexity},
        )

    if cost.depth > max_depth:
        logger.warning(
            "graphql.query_too_deep",
            extra={"depth": cost.depth, "max_depth": max_depth},
        )
        raise AdmissionGraphQLError(
            code=QUERY_TOO_DEEP,
            message=f"Query is too deep: {cost.depth}. Maximum allowed depth is {max_depth}",
            details={"depth": cost.depth, "max": max_depth},
        )

    return cost


def query_limits_rule(
    max_complexity: int | None = None,
    max_depth: int | None = None,
) -> type[ASTValidationRule]:
    """graphql-core validation rule reporting :func:`check_query_limits` rejections."""

    class QueryLimitsRule(ASTValidationRule):
        def enter_document(self, node: DocumentNode, *_args: Any) -> None:
            try:
                check_query_limits(node, max_complexity=max_complexity, max_depth=max_depth)
            except AdmissionGraphQLError as exc:
                self.report_error(GraphQLError(exc.message, node, extensions=exc.extensions))

    return QueryLimitsRule
