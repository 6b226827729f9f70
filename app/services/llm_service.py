"""
AI completion client for document OCR and structured field extraction.

Talks to any OpenAI-compatible chat completions gateway (OpenRouter by
default). Images and PDFs are sent inline as base64 data URLs; plain-text
documents are sent as text.
"""

import base64
import json
import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import ConfigurationException, ExternalServiceException
from app.schemas.extraction import ExtractionResult

logger = logging.getLogger(__name__)


MIME_TYPES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}

TEXT_EXTENSIONS = {"txt", "csv", "json", "md"}

EXTRACTION_SYSTEM_PROMPT = """You are a document extraction AI for a freight forwarding company.
Extract data from documents and return structured JSON.

Document types you handle:
- supplier_invoice: Has supplier name, invoice number, amounts, currency
- packing_list: Has items, weights, quantities, container info
- bill_of_lading: Has shipping details, BL number, vessel, consignee
- clearing_agent_invoice: Has customs duties, VAT, container landing, cargo dues, agency fees
- shipping_invoice: Has ocean freight (USD and ZAR), rate of exchange (ROE), handover fee, vessel, BL and container numbers
- transport_invoice: Has transport costs, GIM surcharge, delivery details, truck info
- telex_release: Confirmation of cargo release
- commercial_invoice: Product pricing, FOB values

Look for LOT numbers in format "LOT XXX" or similar references.

Always return JSON with:
{
  "document_type": "supplier_invoice|packing_list|bill_of_lading|clearing_agent_invoice|shipping_invoice|transport_invoice|telex_release|commercial_invoice|unknown",
  "confidence": 0.0-1.0,
  "data": {
    "supplier_name": "...",
    "client_name": "...",
    "invoice_number": "...",
    "invoice_date": "YYYY-MM-DD",
    "due_date": "YYYY-MM-DD",
    "lot_number": "...",
    "amount": 0.00,
    "currency": "USD|ZAR|EUR",
    "customs_duty": 0.00,
    "customs_vat": 0.00,
    "container_landing": 0.00,
    "cargo_dues": 0.00,
    "agency_fee": 0.00,
    "ocean_freight_usd": 0.00,
    "ocean_freight_zar": 0.00,
    "roe": 0.0000,
    "handover_fee": 0.00,
    "transport_cost": 0.00,
    "gim_surcharge": 0.00,
    "vessel_name": "...",
    "bl_number": "...",
    "eta": "YYYY-MM-DD",
    "container_number": "...",
    "items": []
  },
  "raw_text": "full text from document"
}"""

EXTRACTION_USER_INSTRUCTION = (
    "Extract all data from this document. Identify the document type and return "
    "structured JSON. Be thorough and extract all amounts, dates, and reference numbers."
)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def get_mime_type(file_path: str) -> str:
    """MIME type for an uploaded document, chosen by file extension."""
    extension = PurePosixPath(file_path).suffix.lstrip(".").lower()
    if extension in TEXT_EXTENSIONS:
        return "text/plain"
    return MIME_TYPES.get(extension, "application/octet-stream")


def parse_extraction_content(content: str) -> ExtractionResult:
    """
    Parse completion text into an ExtractionResult.

    Accepts a fenced code block or a bare JSON object embedded in prose.
    Anything that does not yield a JSON object degrades to an ``unknown``
    result with zero confidence; this function never raises.
    """
    content = content or ""
    match = _FENCED_BLOCK.search(content) or _JSON_OBJECT.search(content)
    candidate = match.group(1) if match and match.re is _FENCED_BLOCK else (
        match.group(0) if match else content
    )

    try:
        payload = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Completion did not contain parseable JSON, falling back to unknown")
        return ExtractionResult.unparseable(content)

    if not isinstance(payload, dict):
        logger.warning(f"Completion JSON was {type(payload).__name__}, expected object")
        return ExtractionResult.unparseable(content)

    try:
        result = ExtractionResult.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Completion JSON failed validation: {e}")
        return ExtractionResult.unparseable(content)

    if not result.raw_text:
        result.raw_text = content
    return result


class LLMService:
    """Client for the external AI completion service."""

    def __init__(
        self,
        client=None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        """Initialize the completion client."""
        self.api_key = api_key or settings.LLM_API_KEY
        self.base_url = base_url or settings.LLM_BASE_URL
        self.model = model or settings.LLM_MODEL
        self.max_tokens = settings.LLM_MAX_TOKENS
        self.temperature = settings.LLM_TEMPERATURE
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES

        self.client = client
        if self.client is None and self.api_key:
            from openai import AsyncOpenAI

            self.client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
                default_headers={
                    "HTTP-Referer": settings.LLM_APP_URL,
                    "X-Title": settings.LLM_APP_NAME,
                },
            )
            logger.info(f"LLM service initialized with model: {self.model} ({self.base_url})")
        elif self.client is None:
            logger.warning("LLM API key not configured. Document extraction will be unavailable")

    async def extract_document(self, content: bytes, file_path: str) -> str:
        """Run OCR + extraction over one document and return the completion text."""
        mime_type = get_mime_type(file_path)
        messages = [
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {"role": "user", "content": self._build_user_content(content, mime_type)},
        ]
        return await self._complete(messages)

    def _build_user_content(self, content: bytes, mime_type: str) -> Any:
        if mime_type == "text/plain":
            text = content.decode("utf-8", errors="replace")
            return f"{EXTRACTION_USER_INSTRUCTION}\n\nDocument text:\n{text}"

        encoded = base64.b64encode(content).decode("ascii")
        return [
            {
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
            },
            {"type": "text", "text": EXTRACTION_USER_INSTRUCTION},
        ]

    async def _complete(self, messages: List[Dict[str, Any]]) -> str:
        """Call the completion endpoint; transport and non-2xx errors raise."""
        if self.client is None:
            raise ConfigurationException("AI completion client is not configured")

        from openai import APIConnectionError, APIError, APIStatusError

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except APIStatusError as e:
            raise ExternalServiceException(
                f"AI API error: {e.message}",
                details={"status_code": e.status_code},
            )
        except APIConnectionError as e:
            raise ExternalServiceException(f"AI API unreachable: {str(e)}")
        except APIError as e:
            raise ExternalServiceException(f"AI API error: {str(e)}")

        usage = getattr(response, "usage", None)
        if usage:
            logger.info(f"LLM usage - prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens}")

        if not response.choices:
            raise ExternalServiceException("AI API returned no choices")
        return response.choices[0].message.content or ""
