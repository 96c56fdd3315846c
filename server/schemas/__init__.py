"""Pydantic schemas for API requests and responses."""

from server.schemas.auth import IdentityResponse, RedeemTokenRequest
from server.schemas.common import ErrorResponse
from server.schemas.documents import (
    CreateDocumentResponse,
    DocumentData,
    DocumentEntry,
    DocumentPayload,
    ListDocumentsResponse,
)

__all__ = [
    "IdentityResponse",
    "RedeemTokenRequest",
    "ErrorResponse",
    "CreateDocumentResponse",
    "DocumentData",
    "DocumentEntry",
    "DocumentPayload",
    "ListDocumentsResponse",
]
