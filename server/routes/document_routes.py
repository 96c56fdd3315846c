"""Document collection API routes."""

from fastapi import APIRouter, status

from server.schemas.documents import (
    CreateDocumentResponse,
    DocumentData,
    DocumentEntry,
    DocumentPayload,
    ListDocumentsResponse,
)
from server.services.document_service import DocumentService

router = APIRouter(prefix="/collections", tags=["Documents"])


@router.put(
    "/{collection}/documents/{document_id}",
    response_model=CreateDocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(collection: str, document_id: str, payload: DocumentPayload):
    """
    Create a metadata document with a client-chosen id.

    Returns:
        - id: The document id
        - uploadedAt: Server-assigned timestamp

    Raises:
        - 409: A document with this id already exists
        - 422: Invalid document body
    """
    document_service = DocumentService()
    document = document_service.create_document(collection, document_id, payload)
    return CreateDocumentResponse(id=document.document_id, uploadedAt=document.uploaded_at)


@router.get("/{collection}/documents", response_model=ListDocumentsResponse)
async def list_documents(collection: str):
    """
    Return the complete current contents of a collection, newest first.
    """
    document_service = DocumentService()
    documents = document_service.list_documents(collection)
    return ListDocumentsResponse(
        documents=[
            DocumentEntry(
                id=document.document_id,
                data=DocumentData(
                    fileName=document.file_name,
                    fileSize=document.file_size,
                    fileType=document.file_type,
                    uploadedBy=document.uploaded_by,
                    uploadedAt=document.uploaded_at,
                    shareableLink=document.shareable_link,
                ),
            )
            for document in documents
        ]
    )
