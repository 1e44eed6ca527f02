"""Dashboard aggregations over stored bills."""
from __future__ import annotations

import asyncio

import structlog

from .models.bill import BillFilter, ProcessingStatus
from .models.dashboard import (
    ConsumptionVsCompensation,
    DashboardFilter,
    DashboardPeriod,
    DashboardResponse,
    DashboardSummary,
    EconomyVsTotal,
    EnergyResults,
    FinancialResults,
    MonthlyEnergy,
    MonthlyFinancial,
)
from .parsing import MONTH_ABBREVIATIONS
from .storage.store import BillStore

logger = structlog.get_logger(__name__)


def _percentage(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def _month_sort_key(month: str | None) -> tuple[int, int, str]:
    """Chronological order for "SET/2024"-style months; unknown shapes go last."""
    text = month or ""
    abbrev, _, year = text.partition("/")
    if abbrev in MONTH_ABBREVIATIONS and year.isdigit():
        return int(year), MONTH_ABBREVIATIONS.index(abbrev), text
    return 9999, 99, text


def _as_bill_filter(filters: DashboardFilter | None) -> BillFilter:
    filters = filters or DashboardFilter()
    return BillFilter(
        customer_number=filters.customer_number,
        start_date=filters.start_date,
        end_date=filters.end_date,
    )


class DashboardService:
    """Read-only reporting over already-computed bill metrics."""

    def __init__(self, store: BillStore):
        self._store = store

    async def get_dashboard(self, filters: DashboardFilter | None = None) -> DashboardResponse:
        filters = filters or DashboardFilter()
        logger.info("dashboard_requested", customer_number=filters.customer_number)
        summary, energy, financial = await asyncio.gather(
            self.get_summary(filters),
            self.get_energy_results(filters),
            self.get_financial_results(filters),
        )
        return DashboardResponse(
            summary=summary,
            energy_results=energy,
            financial_results=financial,
            period=DashboardPeriod(
                start_date=filters.start_date,
                end_date=filters.end_date,
                customer_number=filters.customer_number,
            ),
        )

    async def get_summary(self, filters: DashboardFilter | None = None) -> DashboardSummary:
        bill_filter = _as_bill_filter(filters)
        counts = await self._store.count_by_status(bill_filter)
        return DashboardSummary(
            total_bills=sum(counts.values()),
            processed_bills=counts.get(ProcessingStatus.COMPLETED.value, 0),
            failed_bills=counts.get(ProcessingStatus.FAILED.value, 0),
            pending_bills=(
                counts.get(ProcessingStatus.PENDING.value, 0)
                + counts.get(ProcessingStatus.PROCESSING.value, 0)
            ),
            average_processing_time=await self._store.average_processing_time(),
            last_processed_at=await self._store.last_completed_at(bill_filter),
        )

    async def get_energy_results(self, filters: DashboardFilter | None = None) -> EnergyResults:
        bill_filter = _as_bill_filter(filters)
        totals = await self._store.sum_metrics(bill_filter)
        monthly = sorted(await self._store.monthly_metrics(bill_filter), key=lambda m: _month_sort_key(m["month"]))

        consumption = totals["total_energy_consumption"]
        compensation = totals["compensated_energy_quantity"]
        return EnergyResults(
            total_energy_consumption=consumption,
            total_compensated_energy=compensation,
            consumption_vs_compensation=ConsumptionVsCompensation(
                consumption=consumption,
                compensation=compensation,
                percentage=_percentage(compensation, consumption),
            ),
            monthly_data=[
                MonthlyEnergy(
                    month=m["month"] or "",
                    consumption=m["total_energy_consumption"],
                    compensation=m["compensated_energy_quantity"],
                )
                for m in monthly
            ],
        )

    async def get_financial_results(self, filters: DashboardFilter | None = None) -> FinancialResults:
        bill_filter = _as_bill_filter(filters)
        totals = await self._store.sum_metrics(bill_filter)
        monthly = sorted(await self._store.monthly_metrics(bill_filter), key=lambda m: _month_sort_key(m["month"]))

        total_value = round(totals["total_value_without_gd"], 2)
        economy = round(totals["gd_economy"], 2)
        return FinancialResults(
            total_value_without_gd=total_value,
            total_gd_economy=economy,
            economy_vs_total=EconomyVsTotal(
                total_value=total_value,
                economy=economy,
                economy_percentage=_percentage(economy, total_value),
            ),
            monthly_data=[
                MonthlyFinancial(
                    month=m["month"] or "",
                    total_value=round(m["total_value_without_gd"], 2),
                    economy=round(m["gd_economy"], 2),
                )
                for m in monthly
            ],
        )
