"""Dashboard response models."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .bill import CamelModel


@dataclass(frozen=True)
class DashboardFilter:
    customer_number: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class DashboardSummary(CamelModel):
    total_bills: int
    processed_bills: int
    failed_bills: int
    pending_bills: int
    average_processing_time: float | None = None
    last_processed_at: datetime | None = None


class ConsumptionVsCompensation(CamelModel):
    consumption: float
    compensation: float
    percentage: float


class MonthlyEnergy(CamelModel):
    month: str
    consumption: float
    compensation: float


class EnergyResults(CamelModel):
    total_energy_consumption: float
    total_compensated_energy: float
    consumption_vs_compensation: ConsumptionVsCompensation
    monthly_data: list[MonthlyEnergy]


class EconomyVsTotal(CamelModel):
    total_value: float
    economy: float
    economy_percentage: float


class MonthlyFinancial(CamelModel):
    month: str
    total_value: float
    economy: float


class FinancialResults(CamelModel):
    total_value_without_gd: float
    total_gd_economy: float
    economy_vs_total: EconomyVsTotal
    monthly_data: list[MonthlyFinancial]


class DashboardPeriod(CamelModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    customer_number: str | None = None


class DashboardResponse(CamelModel):
    summary: DashboardSummary
    energy_results: EnergyResults
    financial_results: FinancialResults
    period: DashboardPeriod
