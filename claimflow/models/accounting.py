"""Accounting proposal and receipt extraction value objects."""
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional


class ProposalStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class LedgerSide(enum.Enum):
    AP = "AP"
    AR = "AR"


class GLAccountSuggestion:
    def __init__(
        self,
        account_id: str = "",
        account_code: str = "",
        account_name: str = "",
        confidence: float = 0.0,
        reasoning: str = "",
    ) -> None:
        self.account_id = account_id
        self.account_code = account_code
        self.account_name = account_name
        self.confidence = confidence
        self.reasoning = reasoning

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GLAccountSuggestion":
        return cls(
            account_id=str(payload.get("accountId") or ""),
            account_code=str(payload.get("accountCode") or ""),
            account_name=payload.get("accountName") or "",
            confidence=float(payload.get("confidence") or 0.0),
            reasoning=payload.get("reasoning") or "",
        )

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


class APARSuggestion:
    def __init__(
        self,
        type: LedgerSide,
        company: str,
        amount: Decimal,
        due_date: str = "",
        reference: str = "",
    ) -> None:
        self.type = type
        self.company = company
        self.amount = Decimal(amount)
        self.due_date = due_date
        self.reference = reference

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "APARSuggestion":
        return cls(
            type=LedgerSide(payload.get("type") or "AP"),
            company=payload.get("company") or "",
            amount=Decimal(str(payload.get("amount") or 0)),
            due_date=payload.get("dueDate") or "",
            reference=payload.get("reference") or "",
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "company": self.company,
            "amount": float(self.amount),
            "due_date": self.due_date,
            "reference": self.reference,
        }


class JournalEntry:
    def __init__(
        self,
        debit_account: str,
        debit_amount: Decimal,
        credit_account: str,
        credit_amount: Decimal,
        description: str = "",
    ) -> None:
        self.debit_account = debit_account
        self.debit_amount = Decimal(debit_amount)
        self.credit_account = credit_account
        self.credit_amount = Decimal(credit_amount)
        self.description = description

    @property
    def is_balanced(self) -> bool:
        return self.debit_amount == self.credit_amount

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "JournalEntry":
        return cls(
            debit_account=payload.get("debitAccount") or payload.get("debit_account") or "",
            debit_amount=Decimal(str(payload.get("debitAmount", payload.get("debit_amount")) or 0)),
            credit_account=payload.get("creditAccount") or payload.get("credit_account") or "",
            credit_amount=Decimal(str(payload.get("creditAmount", payload.get("credit_amount")) or 0)),
            description=payload.get("description") or "",
        )

    def to_dict(self) -> dict:
        return {
            "debit_account": self.debit_account,
            "debit_amount": float(self.debit_amount),
            "credit_account": self.credit_account,
            "credit_amount": float(self.credit_amount),
            "description": self.description,
        }


class AccountingProposal:
    """Suggested GL account, AP/AR record and journal entry for a claim."""

    def __init__(
        self,
        gl_account: GLAccountSuggestion,
        ap_ar_transaction: APARSuggestion,
        journal_entry: JournalEntry,
        status: ProposalStatus,
        processed_at: Optional[datetime] = None,
    ) -> None:
        self.gl_account = gl_account
        self.ap_ar_transaction = ap_ar_transaction
        self.journal_entry = journal_entry
        self.status = status
        self.processed_at = processed_at

    def to_dict(self) -> dict:
        return {
            "gl_account": self.gl_account.to_dict(),
            "ap_ar_transaction": self.ap_ar_transaction.to_dict(),
            "journal_entry": self.journal_entry.to_dict(),
            "status": self.status.value,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }

    def __repr__(self) -> str:
        return f"<AccountingProposal status={self.status.value} gl={self.gl_account.account_code!r}>"


EXTRACTED_FIELDS = (
    "vendor",
    "amount",
    "tax_amount",
    "invoice_date",
    "due_date",
    "reference",
    "description",
    "category",
)


class ExtractedExpense:
    """Fields read off a receipt, each with a confidence score in [0, 1]."""

    def __init__(
        self,
        fields: Optional[Dict[str, Any]] = None,
        confidence: Optional[Dict[str, float]] = None,
        raw_text: Optional[str] = None,
        processing_time: int = 0,
    ) -> None:
        self.fields = {k: v for k, v in (fields or {}).items() if k in EXTRACTED_FIELDS}
        self.confidence = {
            k: min(max(float(v), 0.0), 1.0)
            for k, v in (confidence or {}).items()
            if k in EXTRACTED_FIELDS
        }
        self.raw_text = raw_text
        self.processing_time = processing_time

    def to_dict(self) -> dict:
        return {
            "fields": dict(self.fields),
            "confidence": dict(self.confidence),
            "raw_text": self.raw_text,
            "processing_time": self.processing_time,
        }


class ExtractionResult:
    def __init__(
        self,
        success: bool,
        data: Optional[ExtractedExpense] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        self.success = success
        self.data = data if data is not None else ExtractedExpense()
        self.error_code = error_code
        self.error_message = error_message

    def to_dict(self) -> dict:
        payload: Dict[str, Any] = {"success": self.success, "data": self.data.to_dict()}
        if not self.success:
            payload["error"] = {"code": self.error_code, "message": self.error_message}
        return payload
