"""OpenAPI customization for the admin API.

Adds the ``X-API-Key`` security scheme, marks every operation as requiring
it, exempts the health check, and fills in tag descriptions.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = (
    {
        "name": "Limiter",
        "description": "Inspect and reconfigure the outbound request rate limiter.",
    },
    {
        "name": "Generation",
        "description": "Text generation throttled by the shared outbound limit.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` so the generated schema carries auth and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(dict(tag) for tag in _TAGS if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if not path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
