"""Wire format of metadata documents and conversion to/from MetadataRecord."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from common.types import MetadataRecord, StoredDocument


class ServerTimestamp:
    """Sentinel asking the store to assign uploadedAt on write."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = ServerTimestamp()

DOCUMENT_FIELDS = ("fileName", "fileSize", "fileType", "uploadedBy", "uploadedAt", "shareableLink")


def record_to_document(record: MetadataRecord) -> Dict[str, Any]:
    """
    Build the document written for a new record.

    uploadedAt is always the SERVER_TIMESTAMP sentinel: the client clock is
    never used for ordering.
    """
    return {
        "fileName": record.file_name,
        "fileSize": record.file_size_bytes,
        "fileType": record.file_type,
        "uploadedBy": record.uploaded_by,
        "uploadedAt": SERVER_TIMESTAMP,
        "shareableLink": record.shareable_link,
    }


def document_to_wire(document: Dict[str, Any]) -> Dict[str, Any]:
    """Strip fields the server assigns itself before sending a document over HTTP."""
    return {
        key: value for key, value in document.items()
        if key in DOCUMENT_FIELDS and key != "uploadedAt"
    }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalize a stored uploadedAt value.

    Returns None for missing or unresolved timestamps; naive datetimes are
    taken to be UTC.
    """
    if value is None or value is SERVER_TIMESTAMP:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def document_to_record(document: StoredDocument) -> MetadataRecord:
    """
    Convert a stored document into a MetadataRecord.

    Raises:
        ValueError: If a required field is missing or malformed
    """
    data = document.data
    try:
        return MetadataRecord(
            id=document.id,
            file_name=str(data["fileName"]),
            file_size_bytes=int(data["fileSize"]),
            file_type=str(data.get("fileType", "")),
            uploaded_by=str(data["uploadedBy"]),
            uploaded_at=parse_timestamp(data.get("uploadedAt")),
            shareable_link=str(data.get("shareableLink", "")),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed document {document.id}: {e}") from e
