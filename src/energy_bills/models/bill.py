"""Bill domain types and their API representations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ProcessingStatus(str, Enum):
    PENDING = "PENDING"  # reserved for queued submissions
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DerivedMetrics(BaseModel):
    """Metrics computed from the extracted bill fields."""

    model_config = ConfigDict(frozen=True)

    total_energy_consumption: float
    compensated_energy_quantity: float
    total_value_without_gd: float
    gd_economy: float


@dataclass(frozen=True)
class BillUpload:
    """A document handed to the pipeline by the upload layer.

    ``file_path`` points at bytes already written to storage.
    """

    content: bytes
    filename: str
    content_type: str | None
    size: int
    file_path: str


@dataclass(frozen=True)
class BillFilter:
    customer_number: str | None = None
    reference_month: str | None = None
    status: ProcessingStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


# ---------------------------------------------------------------------------
# API representations (camelCase on the wire)
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProcessBillResult(CamelModel):
    """Outcome of ``ingest`` / ``reprocess``."""

    success: bool
    message: str
    bill_id: UUID
    processing_time: int  # milliseconds
    supersedes_id: UUID | None = None


class BillResponse(CamelModel):
    id: UUID
    status: ProcessingStatus
    customer_number: str | None = None
    reference_month: str | None = None
    electric_energy_quantity: float | None = None
    electric_energy_value: float | None = None
    sceee_energy_quantity: float | None = None
    sceee_energy_value: float | None = None
    gd_compensated_quantity: float | None = None
    gd_compensated_value: float | None = None
    public_lighting_contrib: float | None = None
    total_energy_consumption: float | None = None
    compensated_energy_quantity: float | None = None
    total_value_without_gd: float | None = None
    gd_economy: float | None = None
    original_file_name: str
    file_size: int
    file_hash: str
    error_message: str | None = None
    supersedes_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class BillListResponse(CamelModel):
    items: list[BillResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ProcessingLogResponse(CamelModel):
    log_id: UUID
    bill_id: UUID
    operation: str
    status: str
    message: str
    details: dict[str, Any] | None = None
    duration_ms: int | None = None
    created_at: datetime
