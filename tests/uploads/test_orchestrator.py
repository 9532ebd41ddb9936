"""Tests for the concurrent upload orchestrator."""

import asyncio

import pytest

from leadintake.exceptions import ErrorKind, StorageError, UploadBatchError
from leadintake.uploads.models import QuotaSnapshot
from leadintake.uploads.orchestrator import UploadOrchestrator


def _upload_tasks():
    return [
        task
        for task in asyncio.all_tasks()
        if task.get_name().startswith("upload-") and not task.done()
    ]


@pytest.mark.asyncio
async def test_empty_batch_makes_no_backend_calls(backend, tags):
    orchestrator = UploadOrchestrator(backend)

    links = await orchestrator.run([], QuotaSnapshot(limit=0, used=0), tags)

    assert links == []
    assert backend.create_calls == []
    assert backend.delete_calls == []
    assert backend.quota_calls == 0


@pytest.mark.asyncio
async def test_batch_below_quota_returns_one_link_per_file(backend_factory, make_submission, tags):
    backend = backend_factory(limit=1000, used=100)
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(i, f"file-{i}.txt", b"x" * 10) for i in range(3)]

    links = await orchestrator.run(submissions, QuotaSnapshot(limit=1000, used=100), tags)

    assert links == [f"https://files.example/file-{i}.txt" for i in range(3)]
    assert backend.delete_calls == []
    assert len(backend.files) == 3


@pytest.mark.asyncio
async def test_links_follow_input_order_not_completion_order(backend_factory, make_submission, tags):
    backend = backend_factory(delays={"slow.txt": 0.05, "medium.txt": 0.02, "fast.txt": 0})
    orchestrator = UploadOrchestrator(backend)
    submissions = [
        make_submission(0, "slow.txt"),
        make_submission(1, "medium.txt"),
        make_submission(2, "fast.txt"),
    ]

    links = await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)

    assert links == [
        "https://files.example/slow.txt",
        "https://files.example/medium.txt",
        "https://files.example/fast.txt",
    ]


@pytest.mark.asyncio
async def test_uploads_carry_lead_metadata(backend, make_submission, tags):
    orchestrator = UploadOrchestrator(backend)

    await orchestrator.run([make_submission(0, "cv.pdf", b"pdf")], QuotaSnapshot(limit=None, used=0), tags)

    content, metadata = backend.files["id-cv.pdf"]
    assert content == b"pdf"
    assert metadata == {
        "lead": "lead-123",
        "email": "jane@example.com",
        "firstName": "Jane",
        "lastName": "Doe",
        "mobile": "+61400000000",
    }


@pytest.mark.asyncio
async def test_reaching_quota_exactly_aborts_batch(backend_factory, make_submission, tags):
    backend = backend_factory(limit=100, used=90)
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(i, f"file-{i}.txt", b"x" * 5) for i in range(3)]

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(submissions, QuotaSnapshot(limit=100, used=90), tags)
    await orchestrator.drain()

    assert exc_info.value.kind is ErrorKind.QUOTA_EXCEEDED
    assert exc_info.value.quota_exceeded
    # Workers dispatched before the breach see the fired token and skip
    assert backend.create_calls == []
    assert backend.delete_calls == []
    assert backend.files == {}


@pytest.mark.asyncio
async def test_one_byte_below_quota_succeeds(backend, make_submission, tags):
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(0, "a.txt", b"x" * 5), make_submission(1, "b.txt", b"x" * 4)]

    links = await orchestrator.run(submissions, QuotaSnapshot(limit=100, used=90), tags)

    assert len(links) == 2


@pytest.mark.asyncio
async def test_usage_already_over_limit_aborts_before_any_upload(backend, make_submission, tags):
    orchestrator = UploadOrchestrator(backend)

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(
            [make_submission(0, "a.txt")], QuotaSnapshot(limit=100, used=120), tags
        )

    assert exc_info.value.kind is ErrorKind.QUOTA_EXCEEDED
    assert backend.create_calls == []


@pytest.mark.asyncio
async def test_unlimited_quota_never_aborts(backend, make_submission, tags):
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(0, "big.bin", size=10**12)]

    links = await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=10**12), tags)

    assert links == ["https://files.example/big.bin"]


@pytest.mark.asyncio
async def test_backend_error_rolls_back_every_upload(backend_factory, make_submission, tags):
    backend = backend_factory(fail_on={"bad.txt"}, delays={"bad.txt": 0.02})
    orchestrator = UploadOrchestrator(backend)
    submissions = [
        make_submission(0, "a.txt"),
        make_submission(1, "bad.txt"),
        make_submission(2, "c.txt"),
    ]

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)
    await orchestrator.drain()

    assert exc_info.value.kind is ErrorKind.PARTIAL_FAILURE
    assert sorted(backend.delete_calls) == ["id-a.txt", "id-c.txt"]
    assert backend.files == {}


@pytest.mark.asyncio
async def test_open_error_aborts_batch(backend, make_submission, tags):
    from leadintake.uploads.models import FileSubmission

    def broken_opener():
        raise OSError("spool file vanished")

    orchestrator = UploadOrchestrator(backend)
    submissions = [
        make_submission(0, "a.txt"),
        FileSubmission(index=1, name="broken.txt", size=4, opener=broken_opener),
    ]

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)
    await orchestrator.drain()

    assert exc_info.value.kind is ErrorKind.PARTIAL_FAILURE
    assert "broken.txt" not in backend.create_calls
    assert backend.files == {}


@pytest.mark.asyncio
async def test_fifty_uploads_with_one_failure_roll_back_the_other_49(backend_factory, make_submission, tags):
    names = [f"file-{i:02d}.txt" for i in range(50)]
    backend = backend_factory(
        fail_on={"file-25.txt"},
        delays={**{name: 0.001 for name in names}, "file-25.txt": 0.05},
    )
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(i, name) for i, name in enumerate(names)]

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)

    assert exc_info.value.kind is ErrorKind.PARTIAL_FAILURE
    assert _upload_tasks() == []

    await orchestrator.drain()

    assert len(backend.delete_calls) == 49
    assert "id-file-25.txt" not in backend.delete_calls
    assert backend.files == {}
    assert orchestrator.pending_rollbacks == 0


@pytest.mark.asyncio
async def test_rollback_failures_are_swallowed(backend_factory, make_submission, tags):
    backend = backend_factory(
        fail_on={"bad.txt"},
        delays={"bad.txt": 0.02},
        delete_error=StorageError("delete refused"),
    )
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(0, "a.txt"), make_submission(1, "bad.txt")]

    with pytest.raises(UploadBatchError):
        await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)
    await orchestrator.drain()

    assert backend.delete_calls == ["id-a.txt"]
    assert orchestrator.pending_rollbacks == 0


@pytest.mark.asyncio
async def test_deadline_cancels_and_rolls_back(backend_factory, make_submission, tags):
    backend = backend_factory(delays={"stuck.txt": 5})
    orchestrator = UploadOrchestrator(backend, timeout=0.05)
    submissions = [make_submission(0, "quick.txt"), make_submission(1, "stuck.txt")]

    with pytest.raises(UploadBatchError) as exc_info:
        await orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)

    assert exc_info.value.kind is ErrorKind.PARTIAL_FAILURE
    assert _upload_tasks() == []

    await orchestrator.drain()

    assert backend.delete_calls == ["id-quick.txt"]
    assert backend.files == {}


@pytest.mark.asyncio
async def test_outer_cancellation_rolls_back_and_propagates(backend_factory, make_submission, tags):
    backend = backend_factory(delays={"stuck.txt": 5})
    orchestrator = UploadOrchestrator(backend)
    submissions = [make_submission(0, "quick.txt"), make_submission(1, "stuck.txt")]

    run_task = asyncio.create_task(
        orchestrator.run(submissions, QuotaSnapshot(limit=None, used=0), tags)
    )
    await asyncio.sleep(0.05)
    run_task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await run_task
    await orchestrator.drain()

    assert _upload_tasks() == []
    assert backend.delete_calls == ["id-quick.txt"]
