"""Posting of approved claims to the accounting ledger."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from claimflow.models import APARSuggestion, ClaimStatus, ExpenseClaim, JournalEntry, User

logger = logging.getLogger(__name__)


class PostingError(Exception):
    """A posting request that would break ledger invariants."""


class PostingRecord:
    def __init__(
        self,
        claim_id: str,
        posted_by: str,
        journal_entry: Optional[JournalEntry],
        ap_ar_transaction: Optional[APARSuggestion],
        gl_account_code: str,
        posted_at: datetime,
    ) -> None:
        self.claim_id = claim_id
        self.posted_by = posted_by
        self.journal_entry = journal_entry
        self.ap_ar_transaction = ap_ar_transaction
        self.gl_account_code = gl_account_code
        self.posted_at = posted_at

    def to_dict(self) -> dict:
        return {
            "claim_id": self.claim_id,
            "posted_by": self.posted_by,
            "journal_entry": self.journal_entry.to_dict() if self.journal_entry else None,
            "ap_ar_transaction": self.ap_ar_transaction.to_dict() if self.ap_ar_transaction else None,
            "gl_account_code": self.gl_account_code,
            "posted_at": self.posted_at.isoformat(),
        }


class Ledger:
    """In-memory record of journal entries and AP/AR transactions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, PostingRecord] = {}

    def init_app(self, app) -> None:
        app.extensions["ledger"] = self

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def get(self, claim_id: str) -> Optional[PostingRecord]:
        with self._lock:
            return self._records.get(claim_id)

    def records(self) -> List[PostingRecord]:
        with self._lock:
            return list(self._records.values())

    def post(
        self,
        claim: ExpenseClaim,
        poster: User,
        gl_account_code: str,
        journal_entry: Optional[JournalEntry] = None,
        ap_ar_transaction: Optional[APARSuggestion] = None,
    ) -> PostingRecord:
        """Record the accounting side of a fully approved claim.

        Refusal only blocks this posting; the claim's approval stands.
        """
        if claim.status is not ClaimStatus.FINANCE_APPROVED:
            raise PostingError(f"Claim {claim.id} is {claim.status.value}; only approved claims can be posted.")
        if journal_entry is None and ap_ar_transaction is None:
            raise PostingError("Nothing to post: choose a journal entry, an AP/AR record, or both.")
        if journal_entry is not None and not journal_entry.is_balanced:
            raise PostingError(
                f"Journal entry must balance: debit {journal_entry.debit_amount} "
                f"!= credit {journal_entry.credit_amount}."
            )

        record = PostingRecord(
            claim_id=claim.id,
            posted_by=poster.id,
            journal_entry=journal_entry,
            ap_ar_transaction=ap_ar_transaction,
            gl_account_code=gl_account_code,
            posted_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if claim.id in self._records:
                raise PostingError(f"Claim {claim.id} has already been posted.")
            self._records[claim.id] = record

        logger.info(
            "Posted claim %s by %s (journal=%s, ap_ar=%s)",
            claim.id,
            poster.id,
            journal_entry is not None,
            ap_ar_transaction is not None,
        )
        return record
