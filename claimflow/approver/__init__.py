"""Approver blueprint."""
from flask import Blueprint

approver_bp = Blueprint("approver", __name__, url_prefix="/approvals")

from . import routes  # noqa: E402,F401
