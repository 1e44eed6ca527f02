"""Test the ingestion pipeline over a real store and a mocked extractor."""
import pytest
from pathlib import Path
from unittest.mock import AsyncMock
from uuid import uuid4
from energy_bills.exceptions import (
    BillNotFoundError,
    BillNotReprocessableError,
    DuplicateBillError,
    ExtractionError,
    InvalidFileError,
    SavedFileReadError,
)
from energy_bills.extraction import BillExtractor
from energy_bills.models.bill import ProcessingStatus
from energy_bills.pipeline import IngestionPipeline
from tests.factories import make_extraction, make_upload


@pytest.fixture
def extractor():
    mock = AsyncMock(spec=BillExtractor)
    mock.extract.return_value = make_extraction()
    return mock


@pytest.fixture
def pipeline(store, extractor, file_storage):
    return IngestionPipeline(store, extractor, file_storage, max_file_size=1024)


async def _saved_upload(file_storage, content: bytes = b"%PDF-1.4 sample bill"):
    path = await file_storage.save(content, "fatura.pdf")
    return make_upload(content=content, filename="fatura.pdf", file_path=path)


async def _failed_bill(pipeline, extractor, file_storage, content: bytes = b"%PDF-1.4 sample bill"):
    extractor.extract.side_effect = ExtractionError("LLM data extraction failed: timeout")
    with pytest.raises(ExtractionError):
        await pipeline.ingest(await _saved_upload(file_storage, content))
    extractor.extract.side_effect = None


class TestIngest:
    @pytest.mark.asyncio
    async def test_success(self, pipeline, store, extractor):
        upload = make_upload()
        result = await pipeline.ingest(upload)

        assert result.success is True
        assert result.message == "Bill processed successfully"
        assert result.processing_time >= 0
        assert result.supersedes_id is None
        extractor.extract.assert_awaited_once_with(upload.content, upload.filename, upload.file_path)

        bill = await store.find_by_id(result.bill_id)
        assert bill.status == ProcessingStatus.COMPLETED.value
        assert bill.customer_number == "7204076116"
        assert bill.reference_month == "SET/2024"
        assert bill.gd_compensated_quantity == pytest.approx(526)
        assert bill.total_energy_consumption == pytest.approx(526)
        assert bill.compensated_energy_quantity == pytest.approx(526)
        assert bill.total_value_without_gd == pytest.approx(461.62)
        assert bill.gd_economy == pytest.approx(438.17)
        assert bill.file_size == upload.size
        assert bill.error_message is None

        logs = await store.list_logs(result.bill_id)
        assert [entry.operation for entry in logs] == ["upload_started", "processing_completed"]
        assert logs[1].duration_ms == result.processing_time

    @pytest.mark.asyncio
    async def test_absent_optionals_stored_as_null(self, pipeline, store, extractor):
        extractor.extract.return_value = make_extraction(
            sceeeEnergy=None, compensatedEnergy=None, publicLightingContrib=None,
        )
        result = await pipeline.ingest(make_upload())

        bill = await store.find_by_id(result.bill_id)
        assert bill.sceee_energy_quantity is None
        assert bill.gd_compensated_value is None
        assert bill.public_lighting_contrib is None
        assert bill.total_energy_consumption == pytest.approx(50)
        assert bill.gd_economy == 0

    @pytest.mark.asyncio
    async def test_extraction_failure_marks_failed(self, pipeline, store, extractor):
        extractor.extract.side_effect = ExtractionError("Extracted data is invalid: customer_number: missing")

        with pytest.raises(ExtractionError) as exc_info:
            await pipeline.ingest(make_upload())

        items, total = await store.find_page()
        assert total == 1
        bill = items[0]
        assert bill.status == ProcessingStatus.FAILED.value
        assert bill.error_message == exc_info.value.message
        assert bill.customer_number is None
        assert bill.total_energy_consumption is None

        logs = await store.list_logs(bill.id)
        assert [entry.operation for entry in logs] == ["upload_started", "processing_failed"]
        assert logs[1].status == "error"

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed_and_propagates(self, pipeline, store, extractor):
        extractor.extract.side_effect = RuntimeError("disk on fire")

        with pytest.raises(RuntimeError, match="disk on fire"):
            await pipeline.ingest(make_upload())

        items, _ = await store.find_page()
        assert items[0].status == ProcessingStatus.FAILED.value
        assert items[0].error_message == "disk on fire"

    @pytest.mark.asyncio
    async def test_duplicate_rejected_without_new_record(self, pipeline, store, extractor):
        await pipeline.ingest(make_upload())

        with pytest.raises(DuplicateBillError, match="already been processed"):
            await pipeline.ingest(make_upload(filename="renamed.pdf"))

        _, total = await store.find_page()
        assert total == 1
        assert extractor.extract.await_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_of_failed_bill_rejected(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        with pytest.raises(DuplicateBillError):
            await pipeline.ingest(make_upload())

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_caught_by_store(self, pipeline, store, extractor, monkeypatch):
        await pipeline.ingest(make_upload())
        # Simulate the other upload committing between the check and the insert
        monkeypatch.setattr(store, "find_by_fingerprint", AsyncMock(return_value=None))

        with pytest.raises(DuplicateBillError):
            await pipeline.ingest(make_upload())
        _, total = await store.find_page()
        assert total == 1

    @pytest.mark.asyncio
    async def test_audit_log_failure_does_not_fail_ingest(self, pipeline, store, monkeypatch):
        monkeypatch.setattr(store, "append_log", AsyncMock(side_effect=RuntimeError("log table gone")))

        result = await pipeline.ingest(make_upload())

        bill = await store.find_by_id(result.bill_id)
        assert bill.status == ProcessingStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_failed_status_write_does_not_mask_error(self, pipeline, store, extractor, monkeypatch):
        extractor.extract.side_effect = ExtractionError("LLM data extraction failed: timeout")
        monkeypatch.setattr(store, "update", AsyncMock(side_effect=RuntimeError("db down")))

        with pytest.raises(ExtractionError, match="timeout"):
            await pipeline.ingest(make_upload())

        items, _ = await store.find_page()
        logs = await store.list_logs(items[0].id)
        assert logs[-1].operation == "processing_failed"


class TestValidation:
    @pytest.mark.asyncio
    async def test_missing_file(self, pipeline):
        with pytest.raises(InvalidFileError, match="No file"):
            await pipeline.ingest(None)

    @pytest.mark.asyncio
    async def test_empty_file(self, pipeline):
        with pytest.raises(InvalidFileError, match="No file"):
            await pipeline.ingest(make_upload(content=b""))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", ["image/png", "text/plain", None])
    async def test_wrong_type(self, pipeline, content_type):
        with pytest.raises(InvalidFileError, match="Only PDF"):
            await pipeline.ingest(make_upload(content_type=content_type))

    @pytest.mark.asyncio
    async def test_content_type_parameters_ignored(self, pipeline):
        result = await pipeline.ingest(make_upload(content_type="application/pdf; name=fatura.pdf"))
        assert result.success

    @pytest.mark.asyncio
    async def test_too_large(self, pipeline):
        with pytest.raises(InvalidFileError, match="File too large"):
            await pipeline.ingest(make_upload(content=b"%PDF" + b"0" * 2048))

    @pytest.mark.asyncio
    async def test_rejected_upload_creates_nothing(self, pipeline, store, extractor):
        with pytest.raises(InvalidFileError):
            await pipeline.ingest(make_upload(content_type="image/png"))
        _, total = await store.find_page()
        assert total == 0
        extractor.extract.assert_not_called()


class TestReprocess:
    @pytest.mark.asyncio
    async def test_reprocess_failed_bill(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        items, _ = await store.find_page()
        failed = items[0]

        result = await pipeline.reprocess(failed.id)

        assert result.success
        assert result.bill_id != failed.id
        assert result.supersedes_id == failed.id
        retried = await store.find_by_id(result.bill_id)
        assert retried.status == ProcessingStatus.COMPLETED.value
        assert retried.file_hash == failed.file_hash
        assert retried.file_path == failed.file_path
        assert (await store.find_by_id(failed.id)).status == ProcessingStatus.FAILED.value

    @pytest.mark.asyncio
    async def test_reprocess_twice_rejected(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        items, _ = await store.find_page()
        failed = items[0]
        await pipeline.reprocess(failed.id)

        with pytest.raises(BillNotReprocessableError, match="already been reprocessed"):
            await pipeline.reprocess(failed.id)

    @pytest.mark.asyncio
    async def test_reprocess_that_fails_again(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        items, _ = await store.find_page()
        extractor.extract.side_effect = ExtractionError("LLM data extraction failed: again")

        with pytest.raises(ExtractionError):
            await pipeline.reprocess(items[0].id)

        counts = await store.count_by_status()
        assert counts == {"FAILED": 2}

    @pytest.mark.asyncio
    async def test_unknown_bill(self, pipeline):
        with pytest.raises(BillNotFoundError):
            await pipeline.reprocess(uuid4())

    @pytest.mark.asyncio
    async def test_completed_bill_not_reprocessable(self, pipeline):
        result = await pipeline.ingest(make_upload())
        with pytest.raises(BillNotReprocessableError, match="FAILED"):
            await pipeline.reprocess(result.bill_id)

    @pytest.mark.asyncio
    async def test_missing_saved_file(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        items, _ = await store.find_page()
        Path(items[0].file_path).unlink()

        with pytest.raises(SavedFileReadError):
            await pipeline.reprocess(items[0].id)
        _, total = await store.find_page()
        assert total == 1


class TestSavedFileCleanup:
    @pytest.mark.asyncio
    async def test_rejected_upload_file_removed(self, pipeline, file_storage):
        upload = await _saved_upload(file_storage)
        upload = make_upload(content=upload.content, content_type="image/png", file_path=upload.file_path)

        with pytest.raises(InvalidFileError):
            await pipeline.ingest(upload)
        assert not Path(upload.file_path).exists()

    @pytest.mark.asyncio
    async def test_duplicate_upload_file_removed(self, pipeline, file_storage):
        first = await _saved_upload(file_storage)
        await pipeline.ingest(first)
        second = await _saved_upload(file_storage)

        with pytest.raises(DuplicateBillError):
            await pipeline.ingest(second)
        assert Path(first.file_path).exists()
        assert not Path(second.file_path).exists()

    @pytest.mark.asyncio
    async def test_database_error_before_record_removes_file(self, pipeline, store, file_storage, monkeypatch):
        monkeypatch.setattr(store, "create", AsyncMock(side_effect=RuntimeError("connection reset")))
        upload = await _saved_upload(file_storage)

        with pytest.raises(RuntimeError, match="connection reset"):
            await pipeline.ingest(upload)
        assert not Path(upload.file_path).exists()

    @pytest.mark.asyncio
    async def test_lookup_error_before_record_removes_file(self, pipeline, store, file_storage, monkeypatch):
        monkeypatch.setattr(store, "find_by_fingerprint", AsyncMock(side_effect=RuntimeError("connection reset")))
        upload = await _saved_upload(file_storage)

        with pytest.raises(RuntimeError):
            await pipeline.ingest(upload)
        assert not Path(upload.file_path).exists()

    @pytest.mark.asyncio
    async def test_failed_extraction_keeps_file(self, pipeline, extractor, file_storage):
        extractor.extract.side_effect = ExtractionError("LLM data extraction failed: timeout")
        upload = await _saved_upload(file_storage)

        with pytest.raises(ExtractionError):
            await pipeline.ingest(upload)
        assert Path(upload.file_path).exists()

    @pytest.mark.asyncio
    async def test_rejected_reprocess_keeps_file(self, pipeline, store, extractor, file_storage):
        await _failed_bill(pipeline, extractor, file_storage)
        items, _ = await store.find_page()
        failed = items[0]
        await pipeline.reprocess(failed.id)

        with pytest.raises(BillNotReprocessableError):
            await pipeline.reprocess(failed.id)
        assert Path(failed.file_path).exists()
