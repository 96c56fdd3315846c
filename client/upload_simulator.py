"""
Upload simulation.

Each submitted file runs through PENDING -> IN_PROGRESS -> COMPLETED/FAILED.
Progress advances on a fixed tick until it reaches 100, then exactly one
metadata record is written to the store. No file bytes are transferred.
"""

import asyncio
import uuid
from typing import AsyncIterator, Callable, Iterable, List, Optional

from client.session import SessionContext
from client.utils import format_file_size, generate_record_id, shareable_link_for
from common.constants import (
    DEFAULT_LINK_BASE_URL,
    PROGRESS_STEP_PERCENT,
    TICK_INTERVAL_SECONDS,
    UPLOADS_COLLECTION,
)
from common.exceptions import InvalidArgument, WriteError
from common.logging_config import get_logger
from common.protocol import record_to_document
from common.types import (
    BatchProgressEvent,
    EventKind,
    FileDescriptor,
    Identity,
    MetadataRecord,
    UploadStatus,
    UploadTask,
)

logger = get_logger(__name__)


class UploadBatch:
    """
    A set of upload tasks submitted together.

    Iterating the batch yields its BatchProgressEvents up to and including
    the BATCH_COMPLETED event. Only one consumer should iterate a batch.
    """

    def __init__(self, tasks: List[UploadTask], on_finished: Callable[['UploadBatch'], None]):
        self.batch_id = uuid.uuid4().hex[:8]
        self.tasks = tasks
        self.emitted: List[BatchProgressEvent] = []
        self._on_finished = on_finished
        self._queue: asyncio.Queue = asyncio.Queue()
        self._runners: List[asyncio.Task] = []
        self._finished = set()
        self._done = asyncio.Event()

    @property
    def progress(self) -> int:
        """Mean progress of all tasks, rounded to the nearest integer."""
        return round(sum(task.progress for task in self.tasks) / len(self.tasks))

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def completed(self) -> List[UploadTask]:
        return [task for task in self.tasks if task.status is UploadStatus.COMPLETED]

    @property
    def failed(self) -> List[UploadTask]:
        return [task for task in self.tasks if task.status is UploadStatus.FAILED]

    async def events(self) -> AsyncIterator[BatchProgressEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.kind is EventKind.BATCH_COMPLETED:
                return

    def __aiter__(self) -> AsyncIterator[BatchProgressEvent]:
        return self.events()

    async def wait(self) -> List[UploadTask]:
        """Wait until every task is terminal and return the tasks."""
        await self._done.wait()
        return self.tasks

    async def abort(self) -> None:
        """Cancel all running tasks; they end FAILED."""
        for runner in self._runners:
            runner.cancel()
        await asyncio.gather(*self._runners, return_exceptions=True)

        # runners cancelled before their first step never reach their own cleanup
        for index, task in enumerate(self.tasks):
            if index not in self._finished:
                self._fail(index, f"Upload of {task.descriptor.name} aborted")
                self._task_finished(index)

    def _emit(self, kind: EventKind, index: Optional[int] = None, message: Optional[str] = None, **details) -> None:
        task = self.tasks[index] if index is not None else None
        event = BatchProgressEvent(
            kind=kind,
            batch_progress=self.progress,
            task_index=index,
            file_name=task.descriptor.name if task else None,
            progress=task.progress if task else None,
            message=message,
            details=details,
        )
        self.emitted.append(event)
        self._queue.put_nowait(event)

    def _fail(self, index: int, message: str) -> None:
        task = self.tasks[index]
        if task.status.is_terminal:
            return
        task.status = UploadStatus.FAILED
        task.message = message
        logger.warning(message)
        self._emit(EventKind.FAILED, index, message)

    def _task_finished(self, index: int) -> None:
        if index in self._finished:
            return
        self._finished.add(index)
        if len(self._finished) < len(self.tasks):
            return
        completed, failed = len(self.completed), len(self.failed)
        self._emit(EventKind.BATCH_COMPLETED, completed=completed, failed=failed)
        self._done.set()
        logger.info(f"Batch {self.batch_id} finished [completed={completed}, failed={failed}]")
        self._on_finished(self)


class UploadSimulator:
    """
    Runs simulated uploads and records their metadata.

    Tasks of a batch run concurrently and independently: a failed write
    only fails its own task.
    """

    def __init__(
        self,
        session: SessionContext,
        collection_path: str = UPLOADS_COLLECTION,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        progress_step: int = PROGRESS_STEP_PERCENT,
        link_base_url: str = DEFAULT_LINK_BASE_URL,
    ):
        if progress_step <= 0 or progress_step > 100:
            raise ValueError("progress_step must be within 1..100")
        self.session = session
        self.collection_path = collection_path
        self.tick_interval = tick_interval
        self.progress_step = progress_step
        self.link_base_url = link_base_url
        self.active_batches: List[UploadBatch] = []

    def submit(self, descriptors: Iterable[FileDescriptor]) -> UploadBatch:
        """
        Start a batch of simulated uploads.

        Must be called from a running event loop.

        Raises:
            InvalidArgument: If descriptors is empty or invalid, or the session has no identity yet
        """
        descriptors = list(descriptors) if descriptors is not None else []
        if not descriptors:
            raise InvalidArgument("At least one file is required")
        for descriptor in descriptors:
            if not isinstance(descriptor, FileDescriptor):
                raise InvalidArgument(f"Not a file descriptor: {descriptor!r}")

        identity = self.session.identity
        if identity is None:
            raise InvalidArgument("Cannot upload before the session identity is established")

        batch = UploadBatch([UploadTask(descriptor=d) for d in descriptors], self._release)
        self.active_batches.append(batch)
        logger.info(f"Batch {batch.batch_id} submitted [files={len(descriptors)}]")

        loop = asyncio.get_running_loop()
        for index, task in enumerate(batch.tasks):
            task.status = UploadStatus.IN_PROGRESS
            batch._runners.append(loop.create_task(self._run(batch, index, identity)))
        return batch

    async def abort_all(self) -> None:
        for batch in list(self.active_batches):
            await batch.abort()

    def build_record(self, descriptor: FileDescriptor, identity: Identity) -> MetadataRecord:
        record_id = generate_record_id(identity)
        return MetadataRecord(
            id=record_id,
            file_name=descriptor.name,
            file_size_bytes=descriptor.size_bytes,
            file_type=descriptor.mime_type,
            uploaded_by=identity,
            uploaded_at=None,
            shareable_link=shareable_link_for(record_id, self.link_base_url),
        )

    def _release(self, batch: UploadBatch) -> None:
        if batch in self.active_batches:
            self.active_batches.remove(batch)

    async def _run(self, batch: UploadBatch, index: int, identity: Identity) -> None:
        task = batch.tasks[index]
        ticker = asyncio.create_task(self._tick(batch, index))
        try:
            await ticker
            await self._write(batch, index, identity)
        except asyncio.CancelledError:
            batch._fail(index, f"Upload of {task.descriptor.name} aborted")
            raise
        finally:
            ticker.cancel()
            batch._task_finished(index)

    async def _tick(self, batch: UploadBatch, index: int) -> None:
        task = batch.tasks[index]
        while task.progress < 100:
            await asyncio.sleep(self.tick_interval)
            if task.status is not UploadStatus.IN_PROGRESS:
                return
            task.progress = min(100, task.progress + self.progress_step)
            batch._emit(EventKind.PROGRESS, index)

    async def _write(self, batch: UploadBatch, index: int, identity: Identity) -> None:
        task = batch.tasks[index]
        if task.write_attempts:
            raise RuntimeError(f"Record for {task.descriptor.name} was already written")

        record = self.build_record(task.descriptor, identity)
        task.record_id = record.id
        task.write_attempts += 1

        try:
            await self.session.store.create(self.collection_path, record.id, record_to_document(record))
        except WriteError as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected error writing record for {task.descriptor.name}: {e}", exc_info=True)
            error = WriteError(str(e))
        else:
            task.status = UploadStatus.COMPLETED
            task.message = (
                f"Uploaded {task.descriptor.name} "
                f"({format_file_size(task.descriptor.size_bytes)})"
            )
            logger.info(f"{task.message} [record_id={record.id}]")
            batch._emit(EventKind.COMPLETED, index, task.message, record_id=record.id)
            return

        batch._fail(index, f"Failed to upload {task.descriptor.name}: {error}")
