"""Request-scoped accessors for the services created at start-up."""
from __future__ import annotations
from fastapi import Request
from ..dashboard import DashboardService
from ..pipeline import IngestionPipeline
from ..storage.files import LocalFileStorage
from ..storage.store import BillStore


def get_store(request: Request) -> BillStore:
    return request.app.state.store


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_file_storage(request: Request) -> LocalFileStorage:
    return request.app.state.file_storage


def get_dashboard(request: Request) -> DashboardService:
    return request.app.state.dashboard
