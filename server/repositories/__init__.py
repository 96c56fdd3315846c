"""Repository layer for data access."""

from server.repositories.document_repository import Document, DocumentRepository
from server.repositories.identity_repository import IdentityRepository

__all__ = [
    "Document",
    "DocumentRepository",
    "IdentityRepository",
]
