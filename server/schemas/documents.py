"""Pydantic schemas for document endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class DocumentPayload(BaseModel):
    """Request model for creating a metadata document. uploadedAt is assigned by the server."""
    fileName: str = Field(min_length=1)
    fileSize: int = Field(ge=0)
    fileType: str
    uploadedBy: str = Field(min_length=1)
    shareableLink: str


class DocumentData(DocumentPayload):
    """Stored document as returned to clients."""
    uploadedAt: datetime


class CreateDocumentResponse(BaseModel):
    """Response model for document creation."""
    id: str
    uploadedAt: datetime


class DocumentEntry(BaseModel):
    """A document and its id within the collection."""
    id: str
    data: DocumentData


class ListDocumentsResponse(BaseModel):
    """Response model for a full collection snapshot."""
    documents: List[DocumentEntry]
