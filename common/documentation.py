"""
OpenAPI schema with bearer auth and the shared error response
"""
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from typing import Dict, Any

def create_custom_openapi(app: FastAPI) -> Dict[str, Any]:
    """Enhance the generated OpenAPI schema with the JWT scheme and error format"""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    components["securitySchemes"] = {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Token returned by POST /api/login, valid for one hour"
        }
    }

    components.setdefault("schemas", {})["ErrorResponse"] = {
        "type": "object",
        "required": ["success", "message", "error", "timestamp"],
        "properties": {
            "success": {"type": "boolean", "example": False},
            "message": {"type": "string", "example": "Insufficient balance"},
            "error": {
                "type": "object",
                "required": ["code", "message"],
                "properties": {
                    "code": {"type": "string", "example": "INSUFFICIENT_FUNDS"},
                    "message": {"type": "string"},
                    "field": {"type": "string", "nullable": True},
                },
            },
            "timestamp": {"type": "number"},
            "trace_id": {"type": "string", "nullable": True},
        },
    }

    # Everything under /api except signup and login needs a token
    for path, operations in openapi_schema.get("paths", {}).items():
        if not path.startswith("/api/") or path in ("/api/signup", "/api/login"):
            continue
        for operation in operations.values():
            operation["security"] = [{"bearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

def install_openapi(app: FastAPI):
    app.openapi = lambda: create_custom_openapi(app)
