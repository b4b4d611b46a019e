"""OpenAPI customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- Bearer (JWT) security scheme, optional on identity introspection and
  absent on health endpoints
- The rate limit rejection shape as a reusable 429 response

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Identity",
        "description": "Identity the admission layer resolved for the caller.",
    },
    {
        "name": "Rate limits",
        "description": "Configured per-operation quotas (administrators only).",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]

_RATE_LIMITED_RESPONSE = {
    "description": "Rate limit exceeded",
    "headers": {
        "Retry-After": {"schema": {"type": "integer"}},
        "X-RateLimit-Limit": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {"schema": {"type": "integer"}},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags, security and 429 docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Provide an access token via 'Authorization: Bearer <token>'.",
            },
        )
        components.setdefault("responses", {}).setdefault("RateLimited", _RATE_LIMITED_RESPONSE)

        schema.setdefault("security", [{"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path.endswith("/health"):
                    method_obj["security"] = []
                    continue
                if path.endswith("/me"):
                    # Anonymous callers are answered as well
                    method_obj["security"] = [{}, {"BearerAuth": []}]
                method_obj.setdefault("responses", {}).setdefault(
                    "429", {"$ref": "#/components/responses/RateLimited"}
                )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
