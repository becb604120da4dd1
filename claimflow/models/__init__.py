"""Application data models exposed for easy imports."""
from .user import ApprovalLimits, OrganizationModel, Role, User, default_organization  # noqa: F401
from .approval import ApprovalStep, Approver, Bound, StepStatus, Unbound  # noqa: F401
from .claim import (
    ClaimStatus,
    Decision,
    ExpenseClaim,
    ExpenseType,
    TERMINAL_STATUSES,
    Urgency,
    derive_status,
)  # noqa: F401
from .accounting import (
    AccountingProposal,
    APARSuggestion,
    ExtractedExpense,
    ExtractionResult,
    GLAccountSuggestion,
    JournalEntry,
    LedgerSide,
    ProposalStatus,
)  # noqa: F401

__all__ = [
    "ApprovalLimits",
    "OrganizationModel",
    "Role",
    "User",
    "default_organization",
    "ApprovalStep",
    "Approver",
    "Bound",
    "StepStatus",
    "Unbound",
    "ClaimStatus",
    "Decision",
    "ExpenseClaim",
    "ExpenseType",
    "TERMINAL_STATUSES",
    "Urgency",
    "derive_status",
    "AccountingProposal",
    "APARSuggestion",
    "ExtractedExpense",
    "ExtractionResult",
    "GLAccountSuggestion",
    "JournalEntry",
    "LedgerSide",
    "ProposalStatus",
]
