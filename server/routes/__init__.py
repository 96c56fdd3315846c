"""API routes package."""

from server.routes.auth_routes import router as auth_router
from server.routes.document_routes import router as document_router

__all__ = ["auth_router", "document_router"]
