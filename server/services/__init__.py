"""Service layer for business logic."""

from server.services.document_service import DocumentService
from server.services.identity_service import IdentityIssuer

__all__ = [
    "DocumentService",
    "IdentityIssuer",
]
