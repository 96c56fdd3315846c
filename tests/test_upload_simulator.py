"""Tests for the upload simulation state machine."""

import asyncio

import pytest

from client.upload_simulator import UploadSimulator
from common.exceptions import InvalidArgument
from common.protocol import SERVER_TIMESTAMP
from common.types import EventKind, FileDescriptor, UploadStatus


def descriptors(*names):
    return [FileDescriptor(name=name, size_bytes=100 * (i + 1), mime_type="text/plain")
            for i, name in enumerate(names)]


async def collect(batch):
    return [event async for event in batch]


class TestSingleUpload:

    @pytest.mark.asyncio
    async def test_progress_write_and_success_message(self, simulator, store, text_file):
        batch = simulator.submit([text_file])
        events = await collect(batch)

        progress = [e.progress for e in events if e.kind is EventKind.PROGRESS]
        assert progress == [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

        assert len(store.create_calls) == 1
        collection, document_id, document = store.create_calls[0]
        assert collection == "uploads"
        assert document["fileName"] == "a.txt"
        assert document["fileSize"] == 1024
        assert document["fileType"] == "text/plain"
        assert document["uploadedBy"] == "u1"
        assert document["uploadedAt"] is SERVER_TIMESTAMP
        assert document_id.startswith("u1_")
        assert document["shareableLink"].endswith(f"/{document_id}")

        kinds = [e.kind for e in events]
        assert kinds[-2:] == [EventKind.COMPLETED, EventKind.BATCH_COMPLETED]
        completed = events[-2]
        assert "a.txt" in completed.message
        assert completed.details["record_id"] == document_id

        task = batch.tasks[0]
        assert task.status is UploadStatus.COMPLETED
        assert task.progress == 100
        assert task.write_attempts == 1
        assert batch.progress == 100

    @pytest.mark.asyncio
    async def test_write_happens_only_after_full_progress(self, ready_session, store, text_file):
        seen_progress = []
        original_create = store.create

        async def recording_create(collection_path, document_id, document):
            seen_progress.append(batch.tasks[0].progress)
            await original_create(collection_path, document_id, document)

        store.create = recording_create
        simulator = UploadSimulator(ready_session, tick_interval=0.001)

        batch = simulator.submit([text_file])
        await batch.wait()

        assert seen_progress == [100]

    @pytest.mark.asyncio
    async def test_tasks_start_in_progress(self, simulator, text_file):
        batch = simulator.submit([text_file])

        assert batch.tasks[0].status is UploadStatus.IN_PROGRESS
        assert batch.tasks[0].progress == 0
        await batch.wait()


class TestBatches:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 3, 7])
    async def test_every_task_reaches_terminal_state(self, simulator, store, count):
        batch = simulator.submit(descriptors(*[f"f{i}.bin" for i in range(count)]))

        tasks = await batch.wait()

        assert len(tasks) == count
        assert all(task.status.is_terminal for task in tasks)
        assert all(task.write_attempts == 1 for task in tasks)
        assert len(store.create_calls) == count

    @pytest.mark.asyncio
    async def test_rejected_write_fails_only_its_task(self, simulator, store):
        store.reject_writes_for("b.txt", "quota exceeded")

        batch = simulator.submit(descriptors("a.txt", "b.txt"))
        events = await collect(batch)

        first, second = batch.tasks
        assert first.status is UploadStatus.COMPLETED
        assert second.status is UploadStatus.FAILED

        failures = [e for e in events if e.kind is EventKind.FAILED]
        assert len(failures) == 1
        assert "b.txt" in failures[0].message
        assert "quota exceeded" in failures[0].message

        assert events[-1].kind is EventKind.BATCH_COMPLETED
        assert events[-1].details == {"completed": 1, "failed": 1}
        assert len(store.create_calls) == 2
        assert batch.done

    @pytest.mark.asyncio
    async def test_unexpected_store_error_becomes_failure(self, ready_session, store):
        original_create = store.create

        async def flaky_create(collection_path, document_id, document):
            if document["fileName"] == "boom.txt":
                raise RuntimeError("socket closed")
            await original_create(collection_path, document_id, document)

        store.create = flaky_create
        simulator = UploadSimulator(ready_session, tick_interval=0.001)

        batch = simulator.submit(descriptors("ok.txt", "boom.txt"))
        tasks = await batch.wait()

        assert [t.status for t in tasks] == [UploadStatus.COMPLETED, UploadStatus.FAILED]
        assert "socket closed" in tasks[1].message

    @pytest.mark.asyncio
    async def test_batch_is_released_when_finished(self, simulator, text_file):
        batch = simulator.submit([text_file])
        assert simulator.active_batches == [batch]

        await batch.wait()

        assert simulator.active_batches == []

    @pytest.mark.asyncio
    async def test_batch_progress_is_mean_of_tasks(self, simulator):
        batch = simulator.submit(descriptors("a.txt", "b.txt"))
        batch.tasks[0].progress = 30
        batch.tasks[1].progress = 45

        assert batch.progress == 38
        await batch.abort()

    @pytest.mark.asyncio
    async def test_record_ids_are_unique(self, simulator, store):
        batch = simulator.submit(descriptors(*[f"same{i}.txt" for i in range(20)]))
        await batch.wait()

        document_ids = [call[1] for call in store.create_calls]
        assert len(set(document_ids)) == 20


class TestRejection:

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, simulator, store):
        with pytest.raises(InvalidArgument):
            simulator.submit([])

        assert store.create_calls == []
        assert simulator.active_batches == []

    @pytest.mark.asyncio
    async def test_submit_before_identity_rejected(self, session, store, text_file):
        simulator = UploadSimulator(session, tick_interval=0.001)

        with pytest.raises(InvalidArgument):
            simulator.submit([text_file])

        await asyncio.sleep(0.02)
        assert store.create_calls == []
        assert simulator.active_batches == []

    @pytest.mark.asyncio
    async def test_non_descriptor_rejected(self, simulator, text_file):
        with pytest.raises(InvalidArgument):
            simulator.submit([text_file, "b.txt"])

        assert simulator.active_batches == []

    def test_invalid_descriptor_values_rejected(self):
        with pytest.raises(InvalidArgument):
            FileDescriptor(name="a.txt", size_bytes=-1, mime_type="text/plain")
        with pytest.raises(InvalidArgument):
            FileDescriptor(name="", size_bytes=1, mime_type="text/plain")

    def test_invalid_progress_step_rejected(self, ready_session):
        with pytest.raises(ValueError):
            UploadSimulator(ready_session, progress_step=0)


class TestAbort:

    @pytest.mark.asyncio
    async def test_no_progress_after_abort(self, ready_session, store):
        simulator = UploadSimulator(ready_session, tick_interval=0.01)
        batch = simulator.submit(descriptors("a.txt", "b.txt"))

        await asyncio.sleep(0.035)
        await batch.abort()
        events_at_abort = len(batch.emitted)
        progress_at_abort = [task.progress for task in batch.tasks]

        await asyncio.sleep(0.05)

        assert len(batch.emitted) == events_at_abort
        assert [task.progress for task in batch.tasks] == progress_at_abort
        assert all(task.status is UploadStatus.FAILED for task in batch.tasks)
        assert all("aborted" in task.message for task in batch.tasks)
        assert batch.done
        assert batch.emitted[-1].kind is EventKind.BATCH_COMPLETED
        assert store.create_calls == []

        for index in range(2):
            kinds = [e.kind for e in batch.emitted if e.task_index == index]
            assert kinds[-1] is EventKind.FAILED
            assert EventKind.PROGRESS not in kinds[kinds.index(EventKind.FAILED):]

    @pytest.mark.asyncio
    async def test_abort_before_first_tick(self, simulator, text_file):
        batch = simulator.submit([text_file])

        await batch.abort()

        assert batch.done
        assert batch.tasks[0].status is UploadStatus.FAILED
        assert simulator.active_batches == []

    @pytest.mark.asyncio
    async def test_abort_all(self, ready_session):
        simulator = UploadSimulator(ready_session, tick_interval=0.05)
        first = simulator.submit(descriptors("a.txt"))
        second = simulator.submit(descriptors("b.txt"))

        await simulator.abort_all()

        assert first.done and second.done
        assert simulator.active_batches == []
