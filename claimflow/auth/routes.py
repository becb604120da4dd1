"""Session routes: pick the acting user from the organization."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_login import current_user, login_required, login_user, logout_user

from claimflow import org_registry
from claimflow.utils.helpers import form_errors, json_response

from . import auth_bp
from .forms import LoginForm


@auth_bp.route("/login", methods=["POST"])
def login() -> Any:
    form = LoginForm()
    if not form.validate_on_submit():
        return json_response(form_errors(form), status=400)

    user = org_registry.current.find_by_email(form.email.data)
    if user is None:
        return json_response({"error": "Unknown user."}, status=404)

    login_user(user)
    current_app.logger.info("User %s signed in as %s", user.id, user.role.value)
    return json_response({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout() -> Any:
    logout_user()
    return json_response({"message": "Signed out."})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me() -> Any:
    return json_response({"user": current_user.to_dict()})
