"""Shared test fixtures."""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from energy_bills.config import Settings
from energy_bills.llm.base import LLMClient, LLMResponse
from energy_bills.prompts.registry import PromptRegistry
from energy_bills.storage.database import build_engine, build_session_factory, create_schema
from energy_bills.storage.files import LocalFileStorage
from energy_bills.storage.store import BillStore


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a throwaway SQLite database and upload directory."""
    return Settings(
        _env_file=None,
        openai_api_key="test-openai-key",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bills.db'}",
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture
def mock_llm_client():
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.get_model_name.return_value = "mock-model"
    client.complete_vision.return_value = LLMResponse(
        content='{"test": "response"}',
        model="mock-model",
        input_tokens=200,
        output_tokens=100,
    )
    return client


@pytest.fixture
def prompt_registry():
    return PromptRegistry()


@pytest_asyncio.fixture
async def store(test_settings):
    engine = build_engine(test_settings.database_url.get_secret_value())
    await create_schema(engine)
    yield BillStore(build_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def file_storage(test_settings):
    return LocalFileStorage(test_settings.upload_dir)
