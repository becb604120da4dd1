"""CSV export and voucher documents for claims."""
from __future__ import annotations

import csv
import io
from typing import Iterable, List, Optional

from claimflow.models import ExpenseClaim, OrganizationModel

CSV_HEADERS = ["ID", "Date", "Vendor", "Reference", "Category", "Amount", "Status", "Urgency"]


def _display_date(claim: ExpenseClaim) -> str:
    when = claim.expense_date or claim.created_at.date()
    return when.isoformat()


def claim_rows(claims: Iterable[ExpenseClaim]) -> List[List[str]]:
    return [
        [
            claim.id,
            _display_date(claim),
            claim.vendor or "-",
            claim.reference or "-",
            claim.category,
            str(claim.amount),
            claim.status.value,
            claim.urgency.value,
        ]
        for claim in claims
    ]


def claims_to_csv(claims: Iterable[ExpenseClaim]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(claim_rows(claims))
    return buffer.getvalue()


def build_voucher(claim: ExpenseClaim, org: Optional[OrganizationModel] = None) -> dict:
    """Voucher content: claim details plus the approval history."""
    requester = org.get_user(claim.requester_id) if org else None
    history = []
    for step in claim.approval_chain:
        approver = org.get_user(step.approver_id) if org and step.approver_id else None
        history.append(
            {
                "role": step.approver_role.value,
                "approver": approver.name if approver else step.approver_id or "-",
                "status": step.status.value,
                "date": step.action_date.date().isoformat() if step.action_date else "-",
                "comment": step.comment or "-",
            }
        )

    return {
        "title": "Expense Voucher",
        "details": [
            ("ID", claim.id),
            ("Requester", requester.name if requester else claim.requester_id),
            ("Date", _display_date(claim)),
            ("Vendor", claim.vendor or "-"),
            ("Reference", claim.reference or "-"),
            ("Category", claim.category),
            ("Amount", f"{claim.currency} {claim.amount}"),
            ("Tax Amount", f"{claim.currency} {claim.tax_amount}" if claim.tax_amount else "-"),
            ("Status", claim.status.value),
            ("Urgency", claim.urgency.value),
            ("Description", claim.description or "-"),
        ],
        "approval_history": history,
    }


def render_voucher_text(voucher: dict) -> str:
    lines = [voucher["title"], "=" * len(voucher["title"])]
    width = max(len(label) for label, _ in voucher["details"])
    lines.extend(f"{label.ljust(width)}  {value}" for label, value in voucher["details"])
    lines.extend(["", "Approval History"])
    for entry in voucher["approval_history"]:
        lines.append(
            f"- {entry['role']}: {entry['status']} by {entry['approver']} "
            f"on {entry['date']} ({entry['comment']})"
        )
    return "\n".join(lines) + "\n"
