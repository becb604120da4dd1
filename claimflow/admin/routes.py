"""Organization setup routes."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_login import current_user, login_required

from claimflow import org_registry
from claimflow.models import Role
from claimflow.services.organization import parse_organization
from claimflow.utils.helpers import json_response, role_required

from . import admin_bp

SETUP_ROLES = (Role.FINANCE, Role.CFO, Role.CEO)


@admin_bp.route("/organization", methods=["GET"])
@login_required
def get_organization() -> Any:
    return json_response({"organization": org_registry.current.to_dict()})


@admin_bp.route("/organization", methods=["PUT"])
@login_required
@role_required(*SETUP_ROLES)
def replace_organization() -> Any:
    """Replace users, reporting lines and limits in one go.

    Claims already submitted keep the chain they were built with.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return json_response({"error": "Expected a JSON object."}, status=400)

    try:
        org = parse_organization(payload)
    except ValueError as exc:
        return json_response({"error": str(exc)}, status=400)

    warnings = org_registry.replace(org)
    current_app.logger.info("Organization updated by %s", current_user.id)
    return json_response({"organization": org.to_dict(), "warnings": warnings})
