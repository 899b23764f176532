"""OpenAPI customization for the governor service.

Adds the ``X-API-Key`` security scheme, tag descriptions and the
health-check exemption to the generated schema, keeping documentation
concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Resources",
        "description": "Governed reads of the remote data store (cache, limiter, stale fallback).",
    },
    {
        "name": "Governor",
        "description": "Limiter/cache/queue status and the emergency reset.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_SECURITY_SCHEME = {
    "type": "apiKey",
    "in": "header",
    "name": "X-API-Key",
    "description": "Provide your API key via the X-API-Key header.",
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and API key security.

    Every operation requires the key by default; ``/health`` is exempted with
    ``security: []``. The patched schema is built once and memoized.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema and app.openapi_schema.get("x-governor-customized"):
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault("ApiKeyAuth", _SECURITY_SCHEME)
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in TAGS_METADATA if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if not path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = []

        schema["x-governor-customized"] = True
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
