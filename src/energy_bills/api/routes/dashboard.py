"""Dashboard routes."""
from __future__ import annotations
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from ...dashboard import DashboardService
from ...models.dashboard import DashboardFilter, DashboardResponse, EnergyResults, FinancialResults
from ..dependencies import get_dashboard

router = APIRouter()


def dashboard_filter(
    customer_number: str | None = Query(None, alias="customerNumber"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> DashboardFilter:
    return DashboardFilter(customer_number=customer_number, start_date=start_date, end_date=end_date)


@router.get("", response_model=DashboardResponse)
async def get_dashboard_data(
    filters: DashboardFilter = Depends(dashboard_filter),
    service: DashboardService = Depends(get_dashboard),
):
    return await service.get_dashboard(filters)


@router.get("/energy", response_model=EnergyResults)
async def get_energy_results(
    filters: DashboardFilter = Depends(dashboard_filter),
    service: DashboardService = Depends(get_dashboard),
):
    return await service.get_energy_results(filters)


@router.get("/financial", response_model=FinancialResults)
async def get_financial_results(
    filters: DashboardFilter = Depends(dashboard_filter),
    service: DashboardService = Depends(get_dashboard),
):
    return await service.get_financial_results(filters)
