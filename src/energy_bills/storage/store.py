"""Bill record store: one session and one transaction per operation."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from energy_bills.exceptions import BillNotFoundError, BillSupersededError, DuplicateBillError
from energy_bills.models.bill import BillFilter
from energy_bills.storage.models import EnergyBill, ProcessingLog
from energy_bills.storage.repositories import BillRepo, ProcessingLogRepo

logger = structlog.get_logger(__name__)


class BillStore:
    """Durable storage for bills and their processing log.

    Every method commits before returning, so a record written here is visible
    to concurrent pipeline runs. The store keeps no in-memory copies.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Bills ─────────────────────────────────────────────────────────────

    async def create(self, **fields: Any) -> EnergyBill:
        """Insert a bill. A fingerprint uniqueness violation raises ``DuplicateBillError``."""
        async with self._session_factory() as session:
            try:
                bill = await BillRepo(session).create(EnergyBill(**fields))
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                logger.warning("bill_unique_violation", file_hash=fields.get("file_hash"), error=str(exc.orig))
                raise DuplicateBillError("This bill has already been processed") from exc
        return bill

    async def update(self, bill_id: UUID, **patch: Any) -> EnergyBill:
        async with self._session_factory() as session:
            repo = BillRepo(session)
            bill = await repo.get_by_id(bill_id)
            if bill is None:
                raise BillNotFoundError(f"Bill {bill_id} not found")
            bill = await repo.update(bill, patch)
            await session.commit()
        return bill

    async def find_by_id(self, bill_id: UUID) -> EnergyBill | None:
        async with self._session_factory() as session:
            return await BillRepo(session).get_by_id(bill_id)

    async def find_by_fingerprint(self, file_hash: str) -> EnergyBill | None:
        async with self._session_factory() as session:
            return await BillRepo(session).get_by_hash(file_hash)

    async def find_superseding(self, bill_id: UUID) -> EnergyBill | None:
        """Return the record created by reprocessing ``bill_id``, if any."""
        async with self._session_factory() as session:
            return await BillRepo(session).get_superseding(bill_id)

    async def find_page(
        self,
        filters: BillFilter | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[EnergyBill], int]:
        async with self._session_factory() as session:
            return await BillRepo(session).list_page(filters, offset=offset, limit=limit)

    async def delete(self, bill_id: UUID) -> int:
        """Delete a bill together with its processing log; returns the number of log entries removed.

        A bill that a reprocess attempt points to cannot be deleted until that
        newer record is gone, so ``supersedes_id`` chains never lose a link.
        """
        async with self._session_factory() as session:
            repo = BillRepo(session)
            bill = await repo.get_by_id(bill_id)
            if bill is None:
                raise BillNotFoundError(f"Bill {bill_id} not found")
            if await repo.get_superseding(bill_id) is not None:
                raise BillSupersededError("This bill was reprocessed; delete the newer record first")
            deleted_logs = await ProcessingLogRepo(session).delete_by_bill(bill_id)
            await repo.delete(bill)
            await session.commit()
        return deleted_logs

    # ── Processing log ────────────────────────────────────────────────────

    async def append_log(
        self,
        bill_id: UUID,
        operation: str,
        status: str,
        message: str,
        details: dict | None = None,
        duration_ms: int | None = None,
    ) -> ProcessingLog:
        async with self._session_factory() as session:
            entry = await ProcessingLogRepo(session).create(ProcessingLog(
                bill_id=bill_id,
                operation=operation,
                status=status,
                message=message,
                details=details,
                duration_ms=duration_ms,
            ))
            await session.commit()
        return entry

    async def list_logs(self, bill_id: UUID) -> list[ProcessingLog]:
        async with self._session_factory() as session:
            return await ProcessingLogRepo(session).get_by_bill(bill_id)

    async def delete_logs_for_bill(self, bill_id: UUID) -> int:
        async with self._session_factory() as session:
            deleted = await ProcessingLogRepo(session).delete_by_bill(bill_id)
            await session.commit()
        return deleted

    # ── Aggregations ──────────────────────────────────────────────────────

    async def count_by_status(self, filters: BillFilter | None = None) -> dict[str, int]:
        async with self._session_factory() as session:
            return await BillRepo(session).count_by_status(filters)

    async def sum_metrics(self, filters: BillFilter | None = None) -> dict[str, float]:
        async with self._session_factory() as session:
            return await BillRepo(session).sum_metrics(filters)

    async def monthly_metrics(self, filters: BillFilter | None = None) -> list[dict]:
        async with self._session_factory() as session:
            return await BillRepo(session).monthly_metrics(filters)

    async def last_completed_at(self, filters: BillFilter | None = None) -> datetime | None:
        async with self._session_factory() as session:
            return await BillRepo(session).last_completed_at(filters)

    async def average_processing_time(self) -> float | None:
        async with self._session_factory() as session:
            return await ProcessingLogRepo(session).average_duration("processing_completed")
