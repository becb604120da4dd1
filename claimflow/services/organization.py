"""Process-wide organization configuration."""
from __future__ import annotations

import json
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List

from claimflow.models import OrganizationModel, Role, default_organization

logger = logging.getLogger(__name__)


class OrganizationRegistry:
    """Owns the current organization snapshot and swaps it wholesale."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = default_organization()

    def init_app(self, app) -> None:
        seed_file = app.config.get("ORG_SEED_FILE")
        if seed_file:
            with open(seed_file, encoding="utf-8") as handle:
                org = OrganizationModel.from_dict(json.load(handle))
            logger.info("Loaded organization from %s", seed_file)
        else:
            org = default_organization(
                Decimal(str(app.config["APPROVAL_LIMIT_MANAGER"])),
                Decimal(str(app.config["APPROVAL_LIMIT_CFO"])),
                Decimal(str(app.config["APPROVAL_LIMIT_CEO"])),
            )
        self.replace(org)
        app.extensions["org_registry"] = self

    @property
    def current(self) -> OrganizationModel:
        with self._lock:
            return self._current

    def replace(self, org: OrganizationModel) -> List[str]:
        """Install ``org`` and return any configuration warnings."""
        warnings = validate_organization(org)
        with self._lock:
            self._current = org
        logger.info("Organization replaced: %r", org)
        for warning in warnings:
            logger.warning(warning)
        return warnings


def validate_organization(org: OrganizationModel) -> List[str]:
    warnings = []
    if not org.limits.is_ordered():
        warnings.append("Approval limits should satisfy manager < cfo < ceo.")
    for user in org.users:
        if user.manager_id and org.get_user(user.manager_id) is None:
            warnings.append(f"Manager {user.manager_id} of user {user.id} does not exist.")
    if not org.users_with_role(Role.FINANCE):
        warnings.append("No Finance user; claims cannot be finalized.")
    return warnings


def parse_organization(payload: Dict[str, Any]) -> OrganizationModel:
    """Build a snapshot from an organization-setup payload.

    Raises ``ValueError`` on malformed input so nothing half-parsed is saved.
    """
    try:
        org = OrganizationModel.from_dict(payload)
    except (KeyError, TypeError, AttributeError, ArithmeticError) as exc:
        raise ValueError(f"Invalid organization payload: {exc}") from exc
    ids = [user.id for user in org.users]
    if len(ids) != len(payload.get("users", [])):
        raise ValueError("User ids must be unique.")
    for user in org.users:
        if user.manager_id == user.id:
            raise ValueError(f"User {user.id} cannot manage themselves.")
    return org
