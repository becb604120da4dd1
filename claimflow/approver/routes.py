"""Approval dashboard routes."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from flask import Response, current_app, request
from flask_login import current_user, login_required

from claimflow import claim_store, ledger, org_registry, proposal_dispatcher
from claimflow.models import ClaimStatus, Decision, ExpenseClaim, JournalEntry, Role
from claimflow.services import approval_engine, export_service
from claimflow.services.approval_engine import ApprovalError, NotAuthorizedError
from claimflow.services.claim_store import ClaimNotFoundError, ConcurrentUpdateError
from claimflow.services.posting_service import PostingError
from claimflow.utils.helpers import filter_claims, form_errors, json_response, role_required

from . import approver_bp
from .forms import DecisionForm, PostingForm, RejectionForm


def _my_approvals() -> List[ExpenseClaim]:
    """Claims waiting on the current user plus claims they already decided."""
    return [
        claim
        for claim in claim_store.all()
        if claim.requester_id != current_user.id
        and (
            approval_engine.can_act(claim, current_user)
            or approval_engine.has_acted_on(claim, current_user)
        )
    ]


def _serialize(claim: ExpenseClaim) -> dict:
    payload = claim.to_dict()
    payload["pending_for_me"] = approval_engine.can_act(claim, current_user)
    return payload


@approver_bp.route("", methods=["GET"])
@login_required
def list_approvals() -> Any:
    claims = filter_claims(_my_approvals(), request.args)
    return json_response({"claims": [_serialize(claim) for claim in claims]})


@approver_bp.route("/summary", methods=["GET"])
@login_required
def summary() -> Any:
    claims = _my_approvals()
    pending = approval_engine.awaiting_action(claims, current_user)
    decided = approval_engine.acted_on(claims, current_user)
    return json_response(
        {
            "pending_count": len(pending),
            "pending_amount": float(sum((claim.amount for claim in pending), Decimal("0"))),
            "acted_count": len(decided),
            "approved_amount": float(
                sum(
                    (claim.amount for claim in decided if claim.status.value != "Rejected"),
                    Decimal("0"),
                )
            ),
        }
    )


def _decide(claim_id: str, decision: Decision) -> Any:
    form = RejectionForm() if decision is Decision.REJECT else DecisionForm()
    if not form.validate_on_submit():
        return json_response(form_errors(form), status=400)

    try:
        claim = claim_store.transition(
            claim_id,
            current_user,
            decision,
            form.comment.data or None,
            step_index=form.step_index.data,
        )
    except ClaimNotFoundError:
        return json_response({"error": "Claim not found."}, status=404)
    except NotAuthorizedError as exc:
        return json_response({"error": str(exc)}, status=403)
    except (ApprovalError, ConcurrentUpdateError) as exc:
        return json_response({"error": str(exc)}, status=409)

    if decision is Decision.REJECT:
        message = "Claim rejected."
    elif claim.is_terminal:
        message = "Claim fully approved."
    else:
        message = "Claim approved. Forwarded to next approver."
    return json_response({"message": message, "claim": _serialize(claim)})


@approver_bp.route("/<claim_id>/approve", methods=["POST"])
@login_required
def approve_claim(claim_id: str) -> Any:
    return _decide(claim_id, Decision.APPROVE)


@approver_bp.route("/<claim_id>/reject", methods=["POST"])
@login_required
def reject_claim(claim_id: str) -> Any:
    return _decide(claim_id, Decision.REJECT)


@approver_bp.route("/<claim_id>/post", methods=["POST"])
@login_required
@role_required(Role.FINANCE)
def post_claim(claim_id: str) -> Any:
    """Post a fully approved claim to the ledger using its accounting proposal."""
    form = PostingForm()
    if not form.validate_on_submit():
        return json_response(form_errors(form), status=400)

    try:
        claim = claim_store.get(claim_id)
    except ClaimNotFoundError:
        return json_response({"error": "Claim not found."}, status=404)

    proposal = claim.accounting_proposal
    payload = request.get_json(silent=True) or {}

    journal_entry = None
    if form.post_journal_entry.data:
        if payload.get("journal_entry"):
            try:
                journal_entry = JournalEntry.from_dict(payload["journal_entry"])
            except (ArithmeticError, AttributeError):
                return json_response({"error": "Invalid journal entry."}, status=400)
        elif proposal is not None:
            journal_entry = proposal.journal_entry
        else:
            return json_response({"error": "No journal entry proposed or provided."}, status=422)

    ap_ar = None
    if form.create_ap_transaction.data:
        if proposal is None:
            return json_response({"error": "No AP/AR record proposed for this claim."}, status=422)
        ap_ar = proposal.ap_ar_transaction

    gl_code = form.gl_account_code.data or (proposal.gl_account.account_code if proposal else "")

    try:
        record = ledger.post(claim, current_user, gl_code, journal_entry=journal_entry, ap_ar_transaction=ap_ar)
    except PostingError as exc:
        current_app.logger.warning("Posting refused for claim %s: %s", claim_id, exc)
        return json_response({"error": str(exc)}, status=422)

    return json_response({"message": "Claim posted to accounting.", "posting": record.to_dict()}, status=201)


@approver_bp.route("/<claim_id>/proposal", methods=["POST"])
@login_required
@role_required(Role.FINANCE)
def generate_proposal(claim_id: str) -> Any:
    """Request a fresh accounting proposal and wait for it."""
    try:
        claim = claim_store.get(claim_id)
    except ClaimNotFoundError:
        return json_response({"error": "Claim not found."}, status=404)
    if claim.status is ClaimStatus.REJECTED:
        return json_response({"error": "Claim was rejected."}, status=409)

    proposal = proposal_dispatcher.generate(claim)
    claim_store.attach_proposal(claim_id, proposal)
    current_app.logger.info(
        "Accounting proposal for claim %s regenerated by %s: %s",
        claim_id,
        current_user.id,
        proposal.status.value,
    )
    return json_response({"proposal": proposal.to_dict(), "claim": _serialize(claim_store.get(claim_id))})


@approver_bp.route("/export.csv", methods=["GET"])
@login_required
def export_csv() -> Any:
    claims = filter_claims(_my_approvals(), request.args)
    return Response(
        export_service.claims_to_csv(claims),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=claims_export.csv"},
    )


@approver_bp.route("/<claim_id>/voucher", methods=["GET"])
@login_required
def voucher(claim_id: str) -> Any:
    try:
        claim = claim_store.get(claim_id)
    except ClaimNotFoundError:
        return json_response({"error": "Claim not found."}, status=404)

    involved = (
        current_user.role is Role.FINANCE
        or claim.requester_id == current_user.id
        or approval_engine.can_act(claim, current_user)
        or approval_engine.has_acted_on(claim, current_user)
    )
    if not involved:
        return json_response({"error": "Insufficient permissions."}, status=403)

    document = export_service.build_voucher(claim, org_registry.current)
    if request.args.get("format") == "text":
        return Response(export_service.render_voucher_text(document), mimetype="text/plain")
    return json_response({"voucher": document})
