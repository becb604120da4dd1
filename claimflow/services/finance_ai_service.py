"""Accounting proposal integration (GL account, AP/AR record, journal entry)."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests

from claimflow.models import (
    AccountingProposal,
    APARSuggestion,
    ExpenseClaim,
    GLAccountSuggestion,
    JournalEntry,
    LedgerSide,
    ProposalStatus,
)

logger = logging.getLogger(__name__)

FINANCE_AI_URL = "https://montpro.app.n8n.cloud/webhook/expense-ai-response"

CATEGORY_GL_ACCOUNTS = {
    "Travel": ("6100", "Travel Expenses"),
    "Meals": ("6200", "Meals & Entertainment"),
    "Office": ("6300", "Office Supplies"),
    "Software": ("6400", "Software & Subscriptions"),
    "Marketing": ("6500", "Marketing Expenses"),
}
DEFAULT_GL_ACCOUNT = ("6000", "General Expenses")
PAYABLES_ACCOUNT = "2100 - Accounts Payable"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_payload(claim: ExpenseClaim) -> Dict[str, Any]:
    invoice_date = claim.invoice_date or claim.expense_date
    return {
        "expenseId": claim.id,
        "vendor": claim.vendor or "",
        "category": claim.category,
        "amount": float(claim.amount),
        "description": claim.description,
        "expenseType": claim.expense_type.value,
        "payTo": claim.pay_to,
        "reference": claim.reference or "",
        "invoiceDate": invoice_date.isoformat() if invoice_date else None,
    }


def failed_proposal(claim: ExpenseClaim, reason: str = "AI processing failed") -> AccountingProposal:
    """A well-formed placeholder whose amounts default from the claim."""
    return AccountingProposal(
        gl_account=GLAccountSuggestion(reasoning=reason),
        ap_ar_transaction=APARSuggestion(
            type=LedgerSide.AP,
            company=claim.pay_to,
            amount=claim.amount,
            reference=claim.reference or "",
        ),
        journal_entry=JournalEntry(
            debit_account="",
            debit_amount=claim.amount,
            credit_account="",
            credit_amount=claim.amount,
            description=claim.description,
        ),
        status=ProposalStatus.FAILED,
        processed_at=_now(),
    )


def parse_proposal(payload: Dict[str, Any]) -> AccountingProposal:
    return AccountingProposal(
        gl_account=GLAccountSuggestion.from_dict(payload["glAccount"]),
        ap_ar_transaction=APARSuggestion.from_dict(payload["apArTransaction"]),
        journal_entry=JournalEntry.from_dict(payload["journalEntry"]),
        status=ProposalStatus.COMPLETED,
        processed_at=_now(),
    )


def request_proposal(claim: ExpenseClaim, url: str = FINANCE_AI_URL, timeout: float = 30) -> AccountingProposal:
    """Ask the accounting service for a proposal; never raises."""
    logger.info("Requesting accounting proposal for claim %s", claim.id)
    try:
        response = requests.post(url, json=build_payload(claim), timeout=timeout)
        response.raise_for_status()
        proposal = parse_proposal(response.json())
    except requests.RequestException as exc:
        logger.error("Accounting proposal request for claim %s failed: %s", claim.id, exc)
        return failed_proposal(claim)
    except (ValueError, KeyError, TypeError, ArithmeticError) as exc:
        logger.error("Malformed accounting proposal for claim %s: %s", claim.id, exc)
        return failed_proposal(claim)

    logger.info("Accounting proposal received for claim %s", claim.id)
    return proposal


def mock_proposal(claim: ExpenseClaim, today: Optional[date] = None) -> AccountingProposal:
    """Offline proposal derived from the claim category."""
    today = today or date.today()
    code, name = CATEGORY_GL_ACCOUNTS.get(claim.category, DEFAULT_GL_ACCOUNT)
    return AccountingProposal(
        gl_account=GLAccountSuggestion(
            account_id=f"gl_{code}",
            account_code=code,
            account_name=name,
            confidence=0.92,
            reasoning=f'Category "{claim.category}" typically maps to {name}',
        ),
        ap_ar_transaction=APARSuggestion(
            type=LedgerSide.AP,
            company=claim.pay_to,
            amount=claim.amount,
            due_date=(today + timedelta(days=7)).isoformat(),
            reference=claim.reference or claim.id,
        ),
        journal_entry=JournalEntry(
            debit_account=f"{code} - {name}",
            debit_amount=claim.amount,
            credit_account=PAYABLES_ACCOUNT,
            credit_amount=claim.amount,
            description=f"{claim.vendor or 'Expense'} - {claim.description}",
        ),
        status=ProposalStatus.COMPLETED,
        processed_at=_now(),
    )


class ProposalDispatcher:
    """Runs proposal requests off the request thread and merges the results.

    Installed as the claim store's proposal hook: ``dispatch`` returns at once
    and the result reaches the claim later through ``attach_proposal``.
    """

    def __init__(self, url: str = FINANCE_AI_URL, timeout: float = 30, use_mock: bool = False) -> None:
        self.url = url
        self.timeout = timeout
        self.use_mock = use_mock
        self.store = None
        self._executor: Optional[ThreadPoolExecutor] = None

    def init_app(self, app, store) -> None:
        self.url = app.config.get("FINANCE_AI_URL") or FINANCE_AI_URL
        self.timeout = app.config.get("EXTERNAL_API_TIMEOUT", self.timeout)
        self.use_mock = app.config.get("FINANCE_AI_MOCK", False)
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        self._executor = ThreadPoolExecutor(
            max_workers=app.config.get("PROPOSAL_WORKERS", 2),
            thread_name_prefix="proposal",
        )
        self.store = store
        store.proposal_hook = self.dispatch
        app.extensions["proposal_dispatcher"] = self

    def generate(self, claim: ExpenseClaim) -> AccountingProposal:
        if self.use_mock:
            return mock_proposal(claim)
        return request_proposal(claim, url=self.url, timeout=self.timeout)

    def dispatch(self, claim: ExpenseClaim) -> Future:
        if self._executor is None:
            raise RuntimeError("ProposalDispatcher used before init_app().")
        logger.info("Dispatching accounting proposal for claim %s", claim.id)
        return self._executor.submit(self._run, claim)

    def _run(self, claim: ExpenseClaim) -> None:
        try:
            proposal = self.generate(claim)
        except Exception:
            logger.exception("Proposal generation crashed for claim %s", claim.id)
            proposal = failed_proposal(claim)
        self.store.attach_proposal(claim.id, proposal)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
