"""Claim submission routes."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_login import current_user, login_required

from claimflow import claim_store, org_registry
from claimflow.models import ExpenseType, Urgency
from claimflow.services import extraction_service
from claimflow.services.approval_engine import OrganizationConfigError
from claimflow.services.claim_store import ClaimNotFoundError
from claimflow.utils.helpers import filter_claims, form_errors, json_response

from . import employee_bp
from .forms import ClaimForm


@employee_bp.route("/claims", methods=["POST"])
@login_required
def submit_claim() -> Any:
    """Submit a new claim; its approval chain is fixed at this point."""
    form = ClaimForm()
    if not form.validate_on_submit():
        return json_response(form_errors(form), status=400)

    payload = request.get_json(silent=True) or {}
    attachments = payload.get("attachments") or request.form.getlist("attachments")

    try:
        claim = claim_store.submit(
            current_user,
            form.amount.data,
            form.currency.data or current_app.config["DEFAULT_CURRENCY"],
            org_registry.current,
            category=form.category.data,
            description=form.description.data or "",
            vendor=form.vendor.data or None,
            reference=form.reference.data or None,
            expense_date=form.expense_date.data,
            invoice_date=form.invoice_date.data,
            due_date=form.due_date.data,
            tax_amount=form.tax_amount.data,
            urgency=Urgency(form.urgency.data),
            expense_type=ExpenseType(form.expense_type.data),
            pay_to=form.pay_to.data or current_user.name,
            submission_name=form.submission_name.data or None,
            attachments=[str(item) for item in attachments],
        )
    except OrganizationConfigError as exc:
        current_app.logger.error("Cannot submit claim for %s: %s", current_user.id, exc)
        return json_response({"error": str(exc)}, status=422)

    return json_response({"message": "Claim submitted.", "claim": claim.to_dict()}, status=201)


@employee_bp.route("/claims", methods=["GET"])
@login_required
def list_claims() -> Any:
    """List claims submitted by the current user."""
    claims = filter_claims(claim_store.for_requester(current_user.id), request.args)
    return json_response(
        {
            "claims": [claim.to_dict() for claim in claims],
            "rejected_count": sum(1 for claim in claims if claim.status.value == "Rejected"),
        }
    )


@employee_bp.route("/claims/<claim_id>", methods=["GET"])
@login_required
def claim_detail(claim_id: str) -> Any:
    try:
        claim = claim_store.get(claim_id)
    except ClaimNotFoundError:
        return json_response({"error": "Claim not found."}, status=404)
    if claim.requester_id != current_user.id:
        return json_response({"error": "Claim not found."}, status=404)
    return json_response({"claim": claim.to_dict()})


@employee_bp.route("/claims/extract", methods=["POST"])
@login_required
def extract_receipt() -> Any:
    """Pre-fill claim fields from receipt files; failures degrade to manual entry."""
    uploads = request.files.getlist("files")
    if not uploads:
        return json_response({"error": "No files uploaded."}, status=400)

    result = extraction_service.extract_expense_data(
        [(upload.filename, upload.stream, upload.mimetype) for upload in uploads],
        user_id=current_user.id,
        currency=request.form.get("currency") or current_app.config["DEFAULT_CURRENCY"],
        url=current_app.config["EXTRACTION_API_URL"],
        timeout=current_app.config["EXTERNAL_API_TIMEOUT"],
    )
    if not result.success:
        current_app.logger.warning(
            "Receipt extraction unavailable for %s: %s", current_user.id, result.error_code
        )
    return json_response(result.to_dict())
