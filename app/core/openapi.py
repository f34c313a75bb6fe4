"""OpenAPI customization utilities.

Enriches the generated schema with the X-API-Key security scheme and tag
descriptions, keeping documentation concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Campaigns",
        "description": "Create campaigns, send them to contact lists, cancel running sends and inspect the email rate limit.",
    },
    {
        "name": "Contacts",
        "description": "Contact lists and their members.",
    },
    {
        "name": "Dashboard",
        "description": "Aggregated contact and campaign figures.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch OpenAPI generation to add API key security and tag metadata.

    Every operation requires ``X-API-Key`` except ``/health``.
    """

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
                "description": "API key mapped to a user, organization and permission set.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if path == "/health":
                for operation in methods.values():
                    if isinstance(operation, dict):
                        operation["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
