"""Expense claim model."""
from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from .accounting import AccountingProposal
from .approval import ApprovalStep, StepStatus
from .user import Role


class ClaimStatus(enum.Enum):
    SUBMITTED = "Submitted"
    MANAGER_APPROVED = "ManagerApproved"
    CFO_APPROVED = "CFOApproved"
    CEO_APPROVED = "CEOApproved"
    FINANCE_APPROVED = "FinanceApproved"
    REJECTED = "Rejected"


TERMINAL_STATUSES = frozenset({ClaimStatus.FINANCE_APPROVED, ClaimStatus.REJECTED})

STATUS_BY_COMPLETED_ROLE = {
    Role.REQUESTER: ClaimStatus.SUBMITTED,
    Role.MANAGER: ClaimStatus.MANAGER_APPROVED,
    Role.CFO: ClaimStatus.CFO_APPROVED,
    Role.CEO: ClaimStatus.CEO_APPROVED,
    Role.FINANCE: ClaimStatus.FINANCE_APPROVED,
}


class Decision(enum.Enum):
    APPROVE = "Approve"
    REJECT = "Reject"


class Urgency(enum.Enum):
    URGENT = "Urgent"
    NORMAL = "Normal"


class ExpenseType(enum.Enum):
    REIMBURSEMENT = "reimbursement"
    VENDOR_PAYMENT = "vendor_payment"


def derive_status(chain: Sequence[ApprovalStep], current_step_index: int) -> ClaimStatus:
    """Project the visible status label from the chain and its cursor.

    A rejection pins the cursor on the rejected step, so that step decides.
    Otherwise the label follows the role of the step just completed; with
    nothing completed beyond submission the claim reads as Submitted.
    """
    if current_step_index < len(chain) and chain[current_step_index].status is StepStatus.REJECTED:
        return ClaimStatus.REJECTED
    if current_step_index <= 0:
        return ClaimStatus.SUBMITTED
    completed = chain[min(current_step_index, len(chain)) - 1]
    return STATUS_BY_COMPLETED_ROLE[completed.approver_role]


class ExpenseClaim:
    def __init__(
        self,
        id: str,
        requester_id: str,
        amount: Decimal,
        currency: str,
        approval_chain: List[ApprovalStep],
        current_step_index: int,
        created_at: datetime,
        category: str = "",
        description: str = "",
        vendor: Optional[str] = None,
        reference: Optional[str] = None,
        expense_date: Optional[date] = None,
        invoice_date: Optional[date] = None,
        due_date: Optional[date] = None,
        tax_amount: Optional[Decimal] = None,
        urgency: Urgency = Urgency.NORMAL,
        expense_type: ExpenseType = ExpenseType.REIMBURSEMENT,
        pay_to: str = "",
        submission_name: Optional[str] = None,
        attachments: Optional[List[str]] = None,
    ) -> None:
        self.id = id
        self.requester_id = requester_id
        self.amount = Decimal(amount)
        self.currency = currency
        self.approval_chain = approval_chain
        self.current_step_index = current_step_index
        self.created_at = created_at
        self.updated_at = created_at
        self.category = category
        self.description = description
        self.vendor = vendor
        self.reference = reference
        self.expense_date = expense_date
        self.invoice_date = invoice_date
        self.due_date = due_date
        self.tax_amount = tax_amount
        self.urgency = urgency
        self.expense_type = expense_type
        self.pay_to = pay_to
        self.submission_name = submission_name
        self.attachments = list(attachments or [])
        self.accounting_proposal: Optional[AccountingProposal] = None
        self.version = 0

    @property
    def status(self) -> ClaimStatus:
        return derive_status(self.approval_chain, self.current_step_index)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def active_step(self) -> Optional[ApprovalStep]:
        if 0 <= self.current_step_index < len(self.approval_chain):
            return self.approval_chain[self.current_step_index]
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "amount": float(self.amount),
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "vendor": self.vendor,
            "reference": self.reference,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "invoice_date": self.invoice_date.isoformat() if self.invoice_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "tax_amount": float(self.tax_amount) if self.tax_amount is not None else None,
            "urgency": self.urgency.value,
            "expense_type": self.expense_type.value,
            "pay_to": self.pay_to,
            "submission_name": self.submission_name,
            "attachments": list(self.attachments),
            "status": self.status.value,
            "approval_chain": [step.to_dict() for step in self.approval_chain],
            "current_step_index": self.current_step_index,
            "accounting_proposal": self.accounting_proposal.to_dict()
            if self.accounting_proposal
            else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }

    def __repr__(self) -> str:
        return f"<ExpenseClaim id={self.id} status={self.status.value} step={self.current_step_index}>"
