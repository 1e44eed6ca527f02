"""Extraction gateway: PDF bytes → validated bill fields via a vision LLM."""
from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationError

from .config import Settings
from .exceptions import ExtractionError
from .llm.base import LLMClient
from .llm.openai_client import OpenAIClient
from .llm.response_parser import extract_json_from_response
from .models.extraction import BillExtraction
from .prompts.registry import PromptRegistry
from .utils.pdf import detect_file_type, extract_text, image_to_base64, render_pdf_to_images

logger = structlog.get_logger(__name__)

SYSTEM_TEMPLATE = "bill_extraction_system"
USER_TEMPLATE = "bill_extraction_user"
MAX_PAGE_TEXT_CHARS = 12000


class BillExtractor:
    """Turns the raw bytes of an energy bill into a ``BillExtraction``.

    Every failure (unreadable PDF, LLM call, empty answer, malformed JSON,
    missing required fields) is raised as ``ExtractionError``.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        prompt_registry: PromptRegistry | None = None,
        *,
        dpi: int = 150,
        max_pages: int = 4,
        temperature: float = 0.0,
        max_tokens: int = 2000,
    ):
        self._llm = llm_client
        self._prompts = prompt_registry or PromptRegistry()
        self._dpi = dpi
        self._max_pages = max_pages
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def extract(self, file_bytes: bytes, file_name: str, file_path: str) -> BillExtraction:
        log = logger.bind(file_name=file_name, file_path=file_path)
        log.info("extraction_started", model=self._llm.get_model_name())

        try:
            images, page_text = await asyncio.to_thread(self._prepare_pages, file_bytes)

            response = await self._llm.complete_vision(
                system_prompt=self._prompts.render(SYSTEM_TEMPLATE),
                user_prompt=self._prompts.render(
                    USER_TEMPLATE,
                    variables={"file_name": file_name, "page_text": page_text or "(sem texto)"},
                ),
                images=images,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                json_mode=True,
            )
            if not response.content.strip():
                raise ExtractionError("The language model returned no content")

            payload = extract_json_from_response(response.content)
            extraction = BillExtraction.from_llm_payload(payload)

        except ExtractionError as exc:
            log.error("extraction_failed", error=exc.message)
            raise
        except ValidationError as exc:
            message = "Extracted data is invalid: " + "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            log.error("extraction_invalid", error=message)
            raise ExtractionError(message) from exc
        except Exception as exc:
            log.error("extraction_failed", error=str(exc), error_type=type(exc).__name__)
            raise ExtractionError(f"LLM data extraction failed: {exc}") from exc

        log.info(
            "extraction_completed",
            customer_number=extraction.customer_number,
            reference_month=extraction.reference_month,
            prompt_version=self._prompts.get_version(USER_TEMPLATE),
            latency_ms=response.latency_ms,
        )
        return extraction

    def _prepare_pages(self, file_bytes: bytes) -> tuple[list[str], str]:
        if detect_file_type(file_bytes) != "pdf":
            raise ExtractionError("File content is not a PDF document")

        try:
            rendered = render_pdf_to_images(file_bytes, dpi=self._dpi, max_pages=self._max_pages)
            texts = extract_text(file_bytes, max_pages=self._max_pages)
        except Exception as exc:
            raise ExtractionError(f"Could not read PDF document: {exc}") from exc

        if not rendered:
            raise ExtractionError("PDF document has no pages")

        page_text = "\n\n".join(t.strip() for t in texts if t.strip())
        return [image_to_base64(img) for img in rendered], page_text[:MAX_PAGE_TEXT_CHARS]


def build_extractor(settings: Settings) -> BillExtractor:
    """Construct the process-wide extractor from settings (called once at start-up)."""
    client = OpenAIClient(
        api_key=settings.openai_api_key.get_secret_value(),
        model=settings.extraction_model,
        azure_endpoint=settings.azure_openai_endpoint,
        timeout=settings.llm_timeout,
    )
    return BillExtractor(
        client,
        PromptRegistry(),
        dpi=settings.render_dpi,
        max_pages=settings.max_pages,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
