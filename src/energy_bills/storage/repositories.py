"""Async repositories over a caller-owned ``AsyncSession``."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from energy_bills.models.bill import BillFilter, ProcessingStatus
from energy_bills.storage.models import EnergyBill, ProcessingLog


def _apply_bill_filter(stmt: Select, filters: BillFilter | None) -> Select:
    if filters is None:
        return stmt
    if filters.customer_number:
        stmt = stmt.where(EnergyBill.customer_number.icontains(filters.customer_number, autoescape=True))
    if filters.reference_month:
        stmt = stmt.where(EnergyBill.reference_month.icontains(filters.reference_month, autoescape=True))
    if filters.status is not None:
        stmt = stmt.where(EnergyBill.status == ProcessingStatus(filters.status).value)
    if filters.start_date is not None:
        stmt = stmt.where(EnergyBill.created_at >= filters.start_date)
    if filters.end_date is not None:
        stmt = stmt.where(EnergyBill.created_at <= filters.end_date)
    return stmt


# ── Energy bills ─────────────────────────────────────────────────────────────


class BillRepo:
    """CRUD and aggregate queries for the ``energy_bills`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, bill: EnergyBill) -> EnergyBill:
        self._session.add(bill)
        await self._session.flush()
        await self._session.refresh(bill)
        return bill

    async def get_by_id(self, bill_id: UUID) -> EnergyBill | None:
        return await self._session.get(EnergyBill, bill_id)

    async def get_by_hash(self, file_hash: str) -> EnergyBill | None:
        stmt = (
            select(EnergyBill)
            .where(EnergyBill.file_hash == file_hash)
            .order_by(EnergyBill.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_superseding(self, bill_id: UUID) -> EnergyBill | None:
        stmt = select(EnergyBill).where(EnergyBill.supersedes_id == bill_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, bill: EnergyBill, values: dict[str, Any]) -> EnergyBill:
        for key, value in values.items():
            if not hasattr(EnergyBill, key):
                raise AttributeError(f"EnergyBill has no column {key!r}")
            setattr(bill, key, value)
        await self._session.flush()
        await self._session.refresh(bill)
        return bill

    async def delete(self, bill: EnergyBill) -> None:
        await self._session.delete(bill)
        await self._session.flush()

    async def list_page(
        self,
        filters: BillFilter | None,
        *,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[EnergyBill], int]:
        stmt = _apply_bill_filter(select(EnergyBill), filters)
        stmt = stmt.order_by(EnergyBill.created_at.desc()).offset(offset).limit(limit)
        count_stmt = _apply_bill_filter(select(func.count(EnergyBill.id)), filters)

        items = list((await self._session.execute(stmt)).scalars().all())
        total = (await self._session.execute(count_stmt)).scalar() or 0
        return items, total

    async def count_by_status(self, filters: BillFilter | None = None) -> dict[str, int]:
        stmt = _apply_bill_filter(
            select(EnergyBill.status, func.count(EnergyBill.id)).group_by(EnergyBill.status),
            filters,
        )
        result = await self._session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def sum_metrics(self, filters: BillFilter | None = None) -> dict[str, float]:
        stmt = _apply_bill_filter(
            select(
                func.sum(EnergyBill.total_energy_consumption),
                func.sum(EnergyBill.compensated_energy_quantity),
                func.sum(EnergyBill.total_value_without_gd),
                func.sum(EnergyBill.gd_economy),
            ).where(EnergyBill.status == ProcessingStatus.COMPLETED.value),
            filters,
        )
        row = (await self._session.execute(stmt)).one()
        return {
            "total_energy_consumption": row[0] or 0.0,
            "compensated_energy_quantity": row[1] or 0.0,
            "total_value_without_gd": row[2] or 0.0,
            "gd_economy": row[3] or 0.0,
        }

    async def monthly_metrics(self, filters: BillFilter | None = None) -> list[dict]:
        """Return per-reference-month sums of the derived metrics for COMPLETED bills."""
        stmt = _apply_bill_filter(
            select(
                EnergyBill.reference_month,
                func.sum(EnergyBill.total_energy_consumption),
                func.sum(EnergyBill.compensated_energy_quantity),
                func.sum(EnergyBill.total_value_without_gd),
                func.sum(EnergyBill.gd_economy),
            )
            .where(EnergyBill.status == ProcessingStatus.COMPLETED.value)
            .group_by(EnergyBill.reference_month),
            filters,
        )
        result = await self._session.execute(stmt)
        return [
            {
                "month": row[0],
                "total_energy_consumption": row[1] or 0.0,
                "compensated_energy_quantity": row[2] or 0.0,
                "total_value_without_gd": row[3] or 0.0,
                "gd_economy": row[4] or 0.0,
            }
            for row in result.all()
        ]

    async def last_completed_at(self, filters: BillFilter | None = None) -> datetime | None:
        stmt = _apply_bill_filter(
            select(func.max(EnergyBill.updated_at)).where(
                EnergyBill.status == ProcessingStatus.COMPLETED.value
            ),
            filters,
        )
        return (await self._session.execute(stmt)).scalar()


# ── Processing log ───────────────────────────────────────────────────────────


class ProcessingLogRepo:
    """Append/read operations for the ``processing_logs`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, entry: ProcessingLog) -> ProcessingLog:
        self._session.add(entry)
        await self._session.flush()
        await self._session.refresh(entry)
        return entry

    async def get_by_bill(self, bill_id: UUID) -> list[ProcessingLog]:
        stmt = (
            select(ProcessingLog)
            .where(ProcessingLog.bill_id == bill_id)
            .order_by(ProcessingLog.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_bill(self, bill_id: UUID) -> int:
        result = await self._session.execute(
            delete(ProcessingLog).where(ProcessingLog.bill_id == bill_id)
        )
        return result.rowcount or 0

    async def average_duration(self, operation: str, status: str = "success") -> float | None:
        stmt = select(func.avg(ProcessingLog.duration_ms)).where(
            ProcessingLog.operation == operation,
            ProcessingLog.status == status,
            ProcessingLog.duration_ms.is_not(None),
        )
        value = (await self._session.execute(stmt)).scalar()
        return float(value) if value is not None else None
