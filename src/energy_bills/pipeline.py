"""Bill ingestion pipeline: validate → fingerprint → provisional record → extract → metrics → finalize."""
from __future__ import annotations

import time
from typing import Any
from uuid import UUID

import structlog

from .calculations import derive_metrics
from .exceptions import (
    BillNotFoundError,
    BillNotReprocessableError,
    DuplicateBillError,
    InvalidFileError,
    SavedFileReadError,
)
from .extraction import BillExtractor
from .models.bill import BillUpload, ProcessBillResult, ProcessingStatus
from .storage.files import LocalFileStorage
from .storage.models import EnergyBill
from .storage.store import BillStore
from .utils.hashing import compute_file_hash

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class IngestionPipeline:
    """Runs one uploaded bill through extraction and records the outcome.

    A bill record is created in PROCESSING as soon as validation and
    deduplication pass, then moved exactly once to COMPLETED or FAILED.
    Failures after creation are stored on the record and in the processing
    log, then re-raised unchanged.
    """

    def __init__(
        self,
        store: BillStore,
        extractor: BillExtractor,
        file_storage: LocalFileStorage,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        self._store = store
        self._extractor = extractor
        self._files = file_storage
        self._max_file_size = max_file_size

    async def ingest(self, upload: BillUpload | None, *, supersedes: EnergyBill | None = None) -> ProcessBillResult:
        """Process one upload.

        Until a record exists nothing points at ``upload.file_path``, so a
        fresh upload that fails that early has its saved file discarded. A
        reprocess never discards: the file belongs to the FAILED record.
        """
        start = time.monotonic()

        try:
            bill = await self._register(upload, supersedes)
        except Exception:
            if supersedes is None and upload is not None:
                await self._discard(upload.file_path)
            raise

        log = logger.bind(file_name=upload.filename, bill_id=str(bill.id))
        await self._record_log(
            bill.id,
            "upload_started",
            "success",
            "File received and stored, starting LLM extraction",
            {"file_name": upload.filename, "file_size": upload.size,
             "supersedes_id": str(supersedes.id) if supersedes is not None else None},
        )

        try:
            extracted = await self._extractor.extract(upload.content, upload.filename, upload.file_path)
            metrics = derive_metrics(extracted)

            sceee = extracted.sceee_energy
            compensated = extracted.compensated_energy
            bill = await self._store.update(
                bill.id,
                customer_number=extracted.customer_number,
                reference_month=extracted.reference_month,
                electric_energy_quantity=extracted.electric_energy.quantity,
                electric_energy_value=extracted.electric_energy.value,
                sceee_energy_quantity=sceee.quantity if sceee is not None else None,
                sceee_energy_value=sceee.value if sceee is not None else None,
                gd_compensated_quantity=compensated.quantity if compensated is not None else None,
                gd_compensated_value=compensated.value if compensated is not None else None,
                public_lighting_contrib=extracted.public_lighting_contrib,
                total_energy_consumption=metrics.total_energy_consumption,
                compensated_energy_quantity=metrics.compensated_energy_quantity,
                total_value_without_gd=metrics.total_value_without_gd,
                gd_economy=metrics.gd_economy,
                status=ProcessingStatus.COMPLETED.value,
                error_message=None,
            )
        except Exception as exc:
            await self._mark_failed(bill.id, exc)
            raise

        processing_time = int((time.monotonic() - start) * 1000)
        await self._record_log(
            bill.id,
            "processing_completed",
            "success",
            "Bill processed successfully",
            {
                "processing_time": processing_time,
                "customer_number": bill.customer_number,
                "reference_month": bill.reference_month,
            },
            duration_ms=processing_time,
        )
        log.info("bill_processing_completed", duration_ms=processing_time)

        return ProcessBillResult(
            success=True,
            message="Bill processed successfully",
            bill_id=bill.id,
            processing_time=processing_time,
            supersedes_id=bill.supersedes_id,
        )

    async def reprocess(self, bill_id: UUID) -> ProcessBillResult:
        """Run a FAILED bill's saved file through ``ingest`` again.

        The FAILED record is left as it is; the new run produces a new record
        that points back to it through ``supersedes_id``.
        """
        log = logger.bind(bill_id=str(bill_id))
        log.info("bill_reprocess_requested")

        bill = await self._store.find_by_id(bill_id)
        if bill is None:
            raise BillNotFoundError("Bill not found")
        if bill.status != ProcessingStatus.FAILED.value:
            raise BillNotReprocessableError("Only bills with status FAILED can be reprocessed")

        try:
            content = await self._files.read(bill.file_path)
        except OSError as exc:
            log.error("bill_saved_file_unreadable", file_path=bill.file_path, error=str(exc))
            raise SavedFileReadError("Could not read the saved file for reprocessing") from exc

        upload = BillUpload(
            content=content,
            filename=bill.original_file_name,
            content_type=PDF_CONTENT_TYPE,
            size=bill.file_size,
            file_path=bill.file_path,
        )
        return await self.ingest(upload, supersedes=bill)

    async def _register(self, upload: BillUpload | None, supersedes: EnergyBill | None) -> EnergyBill:
        """Validate, deduplicate and create the PROCESSING record."""
        self._validate(upload)
        log = logger.bind(file_name=upload.filename)
        log.info("bill_upload_started", size_bytes=upload.size)

        file_hash = compute_file_hash(upload.content)
        if await self._is_duplicate(file_hash, supersedes):
            log.warning("bill_duplicate_detected", file_hash=file_hash)
            raise DuplicateBillError("This bill has already been processed")

        try:
            return await self._store.create(
                original_file_name=upload.filename,
                file_path=upload.file_path,
                file_size=upload.size,
                file_hash=file_hash,
                status=ProcessingStatus.PROCESSING.value,
                supersedes_id=supersedes.id if supersedes is not None else None,
            )
        except DuplicateBillError:
            log.warning("bill_duplicate_detected", file_hash=file_hash, stage="create")
            raise
        except Exception as exc:
            log.error("bill_create_failed", file_hash=file_hash, error=str(exc))
            raise

    async def _discard(self, file_path: str) -> None:
        try:
            await self._files.remove(file_path)
        except OSError as exc:
            logger.error("upload_discard_failed", file_path=file_path, error=str(exc))
        else:
            logger.info("upload_discarded", file_path=file_path)

    def _validate(self, upload: BillUpload | None) -> None:
        if upload is None or not upload.content:
            logger.warning("bill_validation_failed", reason="missing_file")
            raise InvalidFileError("No file was uploaded")

        if (upload.content_type or "").split(";")[0].strip().lower() != PDF_CONTENT_TYPE:
            logger.warning("bill_validation_failed", reason="content_type", content_type=upload.content_type)
            raise InvalidFileError("Only PDF files are accepted")

        if upload.size > self._max_file_size:
            logger.warning("bill_validation_failed", reason="size", size_bytes=upload.size)
            raise InvalidFileError(
                f"File too large. Maximum size: {self._max_file_size / 1024 / 1024:g}MB"
            )

    async def _is_duplicate(self, file_hash: str, supersedes: EnergyBill | None) -> bool:
        if supersedes is not None and supersedes.file_hash == file_hash:
            # Same bytes as the FAILED record: only one retry may hang off it
            if await self._store.find_superseding(supersedes.id) is not None:
                raise BillNotReprocessableError("This bill has already been reprocessed")
            return False
        return await self._store.find_by_fingerprint(file_hash) is not None

    async def _mark_failed(self, bill_id: UUID, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        logger.error("bill_processing_failed", bill_id=str(bill_id), error=message, error_type=type(exc).__name__)
        try:
            await self._store.update(
                bill_id,
                status=ProcessingStatus.FAILED.value,
                error_message=message,
            )
        except Exception as update_exc:
            logger.error("bill_fail_status_write_failed", bill_id=str(bill_id), error=str(update_exc))

        await self._record_log(
            bill_id,
            "processing_failed",
            "error",
            f"Processing failed: {message}",
            {"error": message, "error_type": type(exc).__name__},
        )

    async def _record_log(
        self,
        bill_id: UUID,
        operation: str,
        status: str,
        message: str,
        details: dict[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> None:
        """Append to the audit log; a failure here never affects the pipeline outcome."""
        try:
            await self._store.append_log(
                bill_id, operation, status, message, details=details, duration_ms=duration_ms
            )
        except Exception as exc:
            logger.error("processing_log_write_failed", bill_id=str(bill_id), operation=operation, error=str(exc))
