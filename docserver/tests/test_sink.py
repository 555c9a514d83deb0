"""Tests for the artifact sink's environment policy."""

import pytest

from docserver.adapters.storage import LocalStorageBackend, StorageError, UploadUrlBackend
from docserver.core.errors import LocalPersistError, UploadError, UploadTargetRequiredError
from docserver.core.sink import ArtifactSink

from conftest import FAKE_PDF, FakeStorageService


class BrokenLocalSink(ArtifactSink):
    """Sink whose local disk always fails."""

    def plan(self, profile, upload_target=None):
        plan = super().plan(profile, upload_target)
        if plan.local is not None:
            plan.local = FailingBackend()
        return plan


class FailingBackend(LocalStorageBackend):
    def __init__(self):
        super().__init__("/nonexistent")

    def put_bytes(self, key, data, content_type=None):
        raise OSError(30, "Read-only file system")


def test_plan_local_only_without_target(sink, local_profile):
    plan = sink.plan(local_profile)

    assert isinstance(plan.local, LocalStorageBackend)
    assert plan.remote is None


def test_plan_local_and_remote_with_target(sink, local_profile, storage_service):
    plan = sink.plan(local_profile, storage_service.upload_url)

    assert isinstance(plan.local, LocalStorageBackend)
    assert isinstance(plan.remote, UploadUrlBackend)


def test_plan_serverless_never_uses_local(sink, serverless_profile, storage_service):
    plan = sink.plan(serverless_profile, storage_service.upload_url)

    assert plan.local is None
    assert isinstance(plan.remote, UploadUrlBackend)


def test_plan_serverless_requires_target(sink, serverless_profile):
    with pytest.raises(UploadTargetRequiredError) as excinfo:
        sink.plan(serverless_profile)

    assert excinfo.value.label == "Upload target required"
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_persist_local_only(sink, local_profile, tmp_path):
    locators = await sink.persist(FAKE_PDF, "quote-Q1.pdf", local_profile)

    assert [loc.kind for loc in locators] == ["local"]
    assert (tmp_path / "pdfs" / "quote-Q1.pdf").read_bytes() == FAKE_PDF
    assert locators[0].path == str((tmp_path / "pdfs" / "quote-Q1.pdf").resolve())


@pytest.mark.asyncio
async def test_persist_local_and_remote(sink, local_profile, storage_service):
    locators = await sink.persist(FAKE_PDF, "quote-Q1.pdf", local_profile, storage_service.upload_url)

    assert [loc.kind for loc in locators] == ["local", "remote"]
    assert locators[1].storage_id == "kg0001"


@pytest.mark.asyncio
async def test_persist_serverless_uploads_only(sink, serverless_profile, storage_service, tmp_path):
    locators = await sink.persist(FAKE_PDF, "invoice-I1.pdf", serverless_profile, storage_service.upload_url)

    assert [loc.kind for loc in locators] == ["remote"]
    assert not (tmp_path / "pdfs").exists()


@pytest.mark.asyncio
async def test_remote_round_trip_is_byte_identical(sink, serverless_profile, storage_service):
    locators = await sink.persist(FAKE_PDF, "invoice-I1.pdf", serverless_profile, storage_service.upload_url)

    assert storage_service.fetch(locators[0].storage_id) == FAKE_PDF


@pytest.mark.asyncio
async def test_local_failure_tolerated_when_upload_succeeds(tmp_path, local_profile, storage_service):
    sink = BrokenLocalSink(output_dir=tmp_path, upload_backend_factory=storage_service.backend_factory)

    locators = await sink.persist(FAKE_PDF, "quote-Q1.pdf", local_profile, storage_service.upload_url)

    assert [loc.kind for loc in locators] == ["remote"]


@pytest.mark.asyncio
async def test_local_failure_is_fatal_in_local_only_mode(tmp_path, local_profile):
    sink = BrokenLocalSink(output_dir=tmp_path)

    with pytest.raises(LocalPersistError) as excinfo:
        await sink.persist(FAKE_PDF, "quote-Q1.pdf", local_profile)
    assert "Read-only file system" in excinfo.value.message


@pytest.mark.asyncio
async def test_upload_failure_is_fatal_even_after_local_save(tmp_path, local_profile):
    service = FakeStorageService(fail_status=500)
    sink = ArtifactSink(output_dir=tmp_path / "pdfs", upload_backend_factory=service.backend_factory)

    with pytest.raises(UploadError) as excinfo:
        await sink.persist(FAKE_PDF, "quote-Q1.pdf", local_profile, service.upload_url)

    assert "upload failed" in excinfo.value.message
    assert isinstance(excinfo.value.__cause__, StorageError)
    assert (tmp_path / "pdfs" / "quote-Q1.pdf").exists()


@pytest.mark.asyncio
async def test_concurrent_writes_with_distinct_names(sink, local_profile, tmp_path):
    import asyncio

    names = [f"quote-Q1-{i}.pdf" for i in range(5)]
    await asyncio.gather(*(sink.persist(FAKE_PDF, name, local_profile) for name in names))

    assert sorted(p.name for p in (tmp_path / "pdfs").iterdir()) == sorted(names)
