"""Receipt extraction integration."""
from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, Iterable, Tuple

import requests

from claimflow.models import ExtractedExpense, ExtractionResult

logger = logging.getLogger(__name__)

EXTRACTION_API_URL = "https://montpro.app.n8n.cloud/webhook/expense-management"

UploadedFile = Tuple[str, BinaryIO, str]

_FIELD_NAMES = {
    "vendor": "vendor",
    "amount": "amount",
    "taxAmount": "tax_amount",
    "invoiceDate": "invoice_date",
    "dueDate": "due_date",
    "reference": "reference",
    "description": "description",
    "category": "category",
}


def parse_extraction(data: Dict[str, Any]) -> ExtractedExpense:
    confidence = data.get("confidence") or {}
    if not isinstance(confidence, dict):
        raise TypeError(f"confidence must be an object, got {type(confidence).__name__}")
    fields = {
        snake: data[camel]
        for camel, snake in _FIELD_NAMES.items()
        if data.get(camel) not in (None, "")
    }
    return ExtractedExpense(
        fields=fields,
        confidence={
            _FIELD_NAMES[camel]: score
            for camel, score in confidence.items()
            if camel in _FIELD_NAMES and score is not None
        },
        raw_text=data.get("rawText"),
        processing_time=int(data.get("processingTime") or 0),
    )


def _error_details(payload: Any) -> Dict[str, Any]:
    error = payload.get("error") if isinstance(payload, dict) else None
    return error if isinstance(error, dict) else {}


def extract_expense_data(
    files: Iterable[UploadedFile],
    user_id: str,
    currency: str,
    url: str = EXTRACTION_API_URL,
    timeout: float = 30,
) -> ExtractionResult:
    """Send receipt files to the extraction webhook; failures come back as results."""
    multipart = [("files", (name, stream, mimetype)) for name, stream, mimetype in files]
    try:
        response = requests.post(
            url,
            data={"userId": user_id, "currency": currency},
            files=multipart,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.error("Receipt extraction for user %s failed: %s", user_id, exc)
        return ExtractionResult(
            success=False,
            error_code="NETWORK_ERROR",
            error_message="Failed to connect to AI service. Please check your connection and try again.",
        )

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if not response.ok:
        error = _error_details(payload)
        logger.warning("Receipt extraction returned HTTP %s", response.status_code)
        return ExtractionResult(
            success=False,
            error_code=error.get("code") or "API_ERROR",
            error_message=error.get("message") or f"Server error: {response.status_code}",
        )

    if not isinstance(payload, dict):
        logger.error("Extraction service returned a %s body", type(payload).__name__)
        return ExtractionResult(
            success=False,
            error_code="INVALID_RESPONSE",
            error_message="Extraction service returned an unexpected response.",
        )

    if not payload.get("success") or not isinstance(payload.get("data"), dict):
        error = _error_details(payload)
        return ExtractionResult(
            success=False,
            error_code=error.get("code") or "EXTRACTION_FAILED",
            error_message=error.get("message") or "No fields could be extracted.",
        )

    try:
        data = parse_extraction(payload["data"])
    except (TypeError, ValueError) as exc:
        logger.error("Malformed extraction payload: %s", exc)
        return ExtractionResult(success=False, error_code="INVALID_RESPONSE", error_message=str(exc))

    logger.info("Extracted %d fields for user %s", len(data.fields), user_id)
    return ExtractionResult(success=True, data=data)
