from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict

import pytest

from claimflow import claim_store, create_app, ledger
from claimflow.models import ApprovalLimits, OrganizationModel, Role, User, default_organization
from claimflow.services import approval_engine

FIXED_NOW = datetime(2025, 11, 20, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def org() -> OrganizationModel:
    return default_organization()


@pytest.fixture
def users(org) -> Dict[str, User]:
    return {
        "requester": org.get_user("u1"),
        "manager": org.get_user("u2"),
        "cfo": org.get_user("u3"),
        "ceo": org.get_user("u4"),
        "finance": org.get_user("u5"),
    }


@pytest.fixture
def orphan_org() -> OrganizationModel:
    """Requester without a manager, two CFOs, one of each other role."""
    return OrganizationModel(
        [
            User("r1", "Solo Requester", "solo@example.com", Role.REQUESTER),
            User("c1", "First CFO", "cfo1@example.com", Role.CFO),
            User("c2", "Second CFO", "cfo2@example.com", Role.CFO),
            User("e1", "Only CEO", "ceo@example.com", Role.CEO),
            User("f1", "Finance One", "fin1@example.com", Role.FINANCE),
            User("f2", "Finance Two", "fin2@example.com", Role.FINANCE),
        ],
        ApprovalLimits(Decimal("1000"), Decimal("5000"), Decimal("10000")),
    )


@pytest.fixture
def make_claim(org, users):
    def _make(amount="100", requester=None, organization=None, claim_id="c-1"):
        return approval_engine.create_claim(
            claim_id,
            requester or users["requester"],
            Decimal(amount),
            "IDR",
            organization or org,
            now=FIXED_NOW,
            category="Travel",
            description="Client visit",
            pay_to="John Doe",
        )

    return _make


@pytest.fixture
def app():
    app = create_app("testing")
    claim_store.clear()
    ledger.clear()
    yield app
    claim_store.clear()
    ledger.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(email: str):
        resp = client.post("/auth/login", json={"email": email})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login
