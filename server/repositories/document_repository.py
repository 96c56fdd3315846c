"""Document repository for database operations."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from common.exceptions import DocumentExistsError
from common.logging_config import get_logger
from server.database import get_db_connection

logger = get_logger(__name__)


@dataclass
class Document:
    collection: str
    document_id: str
    file_name: str
    file_size: int
    file_type: str
    uploaded_by: str
    uploaded_at: datetime
    shareable_link: str


class DocumentRepository:
    @staticmethod
    def create_document(document: Document) -> Document:
        logger.debug(f"Creating document {document.document_id} in {document.collection}")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO documents (collection, document_id, file_name, file_size, file_type,
                                           uploaded_by, uploaded_at, shareable_link)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (document.collection, document.document_id, document.file_name, document.file_size,
                     document.file_type, document.uploaded_by, document.uploaded_at.isoformat(timespec="microseconds"),
                     document.shareable_link)
                )
                conn.commit()
            except sqlite3.IntegrityError:
                logger.warning(f"Document {document.document_id} already exists in {document.collection}")
                raise DocumentExistsError(
                    f"Document '{document.document_id}' already exists in '{document.collection}'"
                )

        return document

    @staticmethod
    def list_documents(collection: str) -> List[Document]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM documents WHERE collection = ? ORDER BY uploaded_at DESC, document_id DESC",
                (collection,)
            )
            return [DocumentRepository._row_to_document(row) for row in cursor.fetchall()]

    @staticmethod
    def latest_timestamp() -> Optional[datetime]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT MAX(uploaded_at) AS latest FROM documents")
            row = cursor.fetchone()
            if row is None or row["latest"] is None:
                return None
            return datetime.fromisoformat(row["latest"])

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        return Document(
            collection=row["collection"],
            document_id=row["document_id"],
            file_name=row["file_name"],
            file_size=row["file_size"],
            file_type=row["file_type"],
            uploaded_by=row["uploaded_by"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
            shareable_link=row["shareable_link"],
        )
