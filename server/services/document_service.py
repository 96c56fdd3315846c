"""Document service: server-side timestamps and collection reads."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from common.logging_config import get_logger
from server import database
from server.repositories.document_repository import Document, DocumentRepository
from server.schemas.documents import DocumentPayload

logger = get_logger(__name__)


class DocumentService:
    """
    Creates documents and assigns their uploadedAt timestamps.

    Timestamps are strictly increasing per database, even if the wall clock
    stalls or steps backwards. The watermark is keyed by database path and
    seeded from the newest stored timestamp.
    """

    _lock = threading.Lock()
    _last_timestamps: Dict[str, datetime] = {}

    def __init__(self):
        self.document_repo = DocumentRepository()

    def create_document(self, collection: str, document_id: str, payload: DocumentPayload) -> Document:
        with self._lock:
            uploaded_at = self._next_timestamp()
            document = Document(
                collection=collection,
                document_id=document_id,
                file_name=payload.fileName,
                file_size=payload.fileSize,
                file_type=payload.fileType,
                uploaded_by=payload.uploadedBy,
                uploaded_at=uploaded_at,
                shareable_link=payload.shareableLink,
            )
            self.document_repo.create_document(document)
            self._last_timestamps[database.DATABASE_PATH] = uploaded_at

        logger.info(f"Created document {document_id} in {collection} [uploaded_by={payload.uploadedBy}]")
        return document

    def list_documents(self, collection: str) -> List[Document]:
        return self.document_repo.list_documents(collection)

    def _next_timestamp(self) -> datetime:
        last = self._last_timestamps.get(database.DATABASE_PATH)
        if last is None:
            last = self.document_repo.latest_timestamp()

        now = datetime.now(timezone.utc)
        if last is not None and now <= last:
            now = last + timedelta(microseconds=1)
        return now
