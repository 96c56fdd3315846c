"""Command handler functions for CLI operations."""

from typing import Callable

from client.runtime import LiveDropClient
from client.utils import describe_file, format_file_size
from cli.constants import GREEN, RED, RESET
from cli.models import FeedCommand, UploadCommand, WhoamiCommand
from common.exceptions import InvalidArgument
from common.logging_config import get_logger
from common.types import EventKind, MetadataRecord

logger = get_logger(__name__)


async def handle_upload(
    cmd: UploadCommand,
    client: LiveDropClient,
    out: Callable[[str], None] = print
) -> str:
    """
    Handle 'upload' command.

    Progress and per-file results are written through out while the batch
    runs; the batch summary is returned.

    Args:
        cmd: UploadCommand with local file paths
        client: Started LiveDropClient
        out: Line printer for progress output

    Returns:
        Batch summary or error message
    """
    try:
        descriptors = [describe_file(path) for path in cmd.paths]
        batch = client.simulator.submit(descriptors)
    except InvalidArgument as e:
        return f"Error: {e}"

    async for event in batch:
        if event.kind is EventKind.PROGRESS:
            out(f"  {event.file_name}: {event.progress}% (batch {event.batch_progress}%)")
        elif event.kind is EventKind.COMPLETED:
            out(f"{GREEN}{event.message}{RESET}")
        elif event.kind is EventKind.FAILED:
            out(f"{RED}{event.message}{RESET}")

    return f"Batch finished: {len(batch.completed)} uploaded, {len(batch.failed)} failed"


def format_record(record: MetadataRecord) -> str:
    uploaded_at = record.uploaded_at.strftime('%Y-%m-%d %H:%M:%S') if record.uploaded_at else "pending"
    return (
        f"{uploaded_at}  {record.file_name} ({format_file_size(record.file_size_bytes)}, "
        f"{record.file_type})  by {record.uploaded_by}\n    {record.shareable_link}"
    )


def handle_feed(cmd: FeedCommand, client: LiveDropClient) -> str:
    """
    Handle 'feed' command.

    Returns:
        The newest cmd.limit entries of the local feed view
    """
    snapshot = client.feed.snapshot
    if snapshot:
        lines = [format_record(record) for record in snapshot[:cmd.limit]]
        if len(snapshot) > cmd.limit:
            lines.append(f"... {len(snapshot) - cmd.limit} more")
    else:
        lines = ["No uploads yet."]

    if client.feed.last_error is not None:
        lines.append(f"{RED}Feed may be stale: {client.feed.last_error}{RESET}")
    return "\n".join(lines)


def handle_whoami(cmd: WhoamiCommand, client: LiveDropClient) -> str:
    """Handle 'whoami' command."""
    return client.identity or "No identity established"
