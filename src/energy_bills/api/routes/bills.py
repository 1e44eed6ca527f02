"""Bill upload, listing, reprocessing and deletion routes."""
from __future__ import annotations
import math
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
import structlog
from ...exceptions import BillNotFoundError
from ...models.bill import (
    BillFilter,
    BillListResponse,
    BillResponse,
    BillUpload,
    ProcessBillResult,
    ProcessingLogResponse,
    ProcessingStatus,
)
from ...pipeline import IngestionPipeline
from ...storage.files import LocalFileStorage
from ...storage.store import BillStore
from ..dependencies import get_file_storage, get_pipeline, get_store

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("/upload", response_model=ProcessBillResult)
async def upload_bill(
    file: UploadFile | None = File(None),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    file_storage: LocalFileStorage = Depends(get_file_storage),
):
    """Upload a PDF bill and process it synchronously."""
    if file is None:
        return await pipeline.ingest(None)

    content = await file.read()
    file_path = await file_storage.save(content, file.filename)
    upload = BillUpload(
        content=content,
        filename=file.filename or "upload.pdf",
        content_type=file.content_type,
        size=len(content),
        file_path=file_path,
    )
    return await pipeline.ingest(upload)


@router.get("", response_model=BillListResponse)
async def list_bills(
    customer_number: str | None = Query(None, alias="customerNumber"),
    reference_month: str | None = Query(None, alias="referenceMonth"),
    status: ProcessingStatus | None = None,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: BillStore = Depends(get_store),
):
    """List bills, newest first, with optional filters."""
    filters = BillFilter(
        customer_number=customer_number,
        reference_month=reference_month,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    items, total = await store.find_page(filters, offset=(page - 1) * limit, limit=limit)
    return BillListResponse(
        items=[BillResponse.model_validate(bill) for bill in items],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/{bill_id}", response_model=BillResponse)
async def get_bill(bill_id: UUID, store: BillStore = Depends(get_store)):
    bill = await store.find_by_id(bill_id)
    if bill is None:
        raise BillNotFoundError("Bill not found")
    return BillResponse.model_validate(bill)


@router.get("/{bill_id}/logs", response_model=list[ProcessingLogResponse])
async def get_bill_logs(bill_id: UUID, store: BillStore = Depends(get_store)):
    """Audit log entries of a bill, oldest first."""
    if await store.find_by_id(bill_id) is None:
        raise BillNotFoundError("Bill not found")
    return [ProcessingLogResponse.model_validate(entry) for entry in await store.list_logs(bill_id)]


@router.patch("/{bill_id}/reprocess", response_model=ProcessBillResult)
async def reprocess_bill(bill_id: UUID, pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Run a FAILED bill's saved PDF through the pipeline again."""
    return await pipeline.reprocess(bill_id)


@router.delete("/{bill_id}", status_code=204)
async def delete_bill(bill_id: UUID, store: BillStore = Depends(get_store)):
    """Delete a bill and its log entries. A bill that was reprocessed must outlive its retry."""
    deleted_logs = await store.delete(bill_id)
    logger.info("bill_deleted", bill_id=str(bill_id), deleted_logs=deleted_logs)
    return Response(status_code=204)
