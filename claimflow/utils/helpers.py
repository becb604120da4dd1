"""General helper utilities."""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Iterable, List, Mapping

from flask import jsonify
from flask_login import current_user

from claimflow.models import ExpenseClaim, Role

JsonView = Callable[..., Any]


def json_response(payload: Any, status: int = 200):
    """Return a JSON response with status code."""
    return jsonify(payload), status


def role_required(*roles: Role):
    """Restrict a route to one or more roles."""
    def decorator(view_func: JsonView) -> JsonView:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_response({"error": "Authentication required."}, status=401)
            if current_user.role not in roles:
                return json_response({"error": "Insufficient permissions."}, status=403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


SORT_KEYS = {
    "DateNewest": (lambda claim: claim.created_at, True),
    "DateOldest": (lambda claim: claim.created_at, False),
    "AmountHigh": (lambda claim: claim.amount, True),
    "AmountLow": (lambda claim: claim.amount, False),
}


def filter_claims(claims: Iterable[ExpenseClaim], args: Mapping[str, str]) -> List[ExpenseClaim]:
    """Apply the dashboard's status filter, text search and sort order."""
    result = list(claims)

    term = (args.get("q") or "").strip().lower()
    if term:
        result = [
            claim
            for claim in result
            if term in (claim.vendor or "").lower()
            or term in (claim.reference or "").lower()
            or term in (claim.description or "").lower()
        ]

    status = args.get("status")
    if status and status != "All":
        result = [claim for claim in result if claim.status.value == status]

    key, reverse = SORT_KEYS.get(args.get("sort") or "DateNewest", SORT_KEYS["DateNewest"])
    result.sort(key=key, reverse=reverse)
    return result


def form_errors(form) -> dict:
    return {
        "error": "Invalid input.",
        "fields": {name: list(errors) for name, errors in form.errors.items()},
    }
