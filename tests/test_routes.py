import io
from unittest.mock import MagicMock, patch

import pytest

from claimflow import claim_store, ledger
from claimflow.services import extraction_service
from claimflow.services.finance_ai_service import mock_proposal

CLAIM = {"amount": "100", "category": "Travel", "description": "Taxi to client", "vendor": "Bluebird"}


@pytest.fixture
def sync_proposals(app):
    """Attach proposals inline instead of on the worker pool."""
    claim_store.proposal_hook = lambda claim: claim_store.attach_proposal(claim.id, mock_proposal(claim))


def submit(client, login, **overrides):
    login("john@example.com")
    resp = client.post("/employee/claims", json={**CLAIM, **overrides})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["claim"]


class TestSession:
    def test_login_and_me(self, client, login):
        login("jane@example.com")
        resp = client.get("/auth/me")
        assert resp.get_json()["user"]["role"] == "Manager"

    def test_unknown_email(self, client):
        resp = client.post("/auth/login", json={"email": "nobody@example.com"})
        assert resp.status_code == 404

    def test_malformed_email(self, client):
        resp = client.post("/auth/login", json={"email": "not-an-email"})
        assert resp.status_code == 400
        assert "email" in resp.get_json()["fields"]

    def test_anonymous_requests_get_401(self, client):
        assert client.get("/approvals").status_code == 401
        assert client.post("/employee/claims", json=CLAIM).status_code == 401

    def test_logout(self, client, login):
        login("john@example.com")
        client.post("/auth/logout")
        assert client.get("/auth/me").status_code == 401


class TestSubmission:
    def test_submit_builds_chain(self, client, login):
        claim = submit(client, login, amount="6000", expense_date="2025-11-01")
        assert claim["status"] == "Submitted"
        assert claim["currency"] == "IDR"
        assert claim["pay_to"] == "John Doe"
        assert claim["current_step_index"] == 1
        assert [step["approver_role"] for step in claim["approval_chain"]] == [
            "Requester",
            "Manager",
            "CFO",
            "Finance",
        ]

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"amount": "-5", "category": "Travel"}, "amount"),
            ({"amount": "10"}, "category"),
            ({**CLAIM, "invoice_date": "2025-11-10", "due_date": "2025-11-01"}, "due_date"),
            ({**CLAIM, "urgency": "Whenever"}, "urgency"),
        ],
    )
    def test_invalid_submission(self, client, login, payload, field):
        login("john@example.com")
        resp = client.post("/employee/claims", json=payload)
        assert resp.status_code == 400
        assert field in resp.get_json()["fields"]
        assert claim_store.all() == []

    def test_list_filters_and_counts_rejections(self, client, login):
        first = submit(client, login, vendor="Garuda")
        submit(client, login, vendor="Bluebird")
        login("jane@example.com")
        client.post(f"/approvals/{first['id']}/reject", json={"comment": "duplicate"})

        login("john@example.com")
        body = client.get("/employee/claims").get_json()
        assert len(body["claims"]) == 2
        assert body["rejected_count"] == 1

        rejected = client.get("/employee/claims?status=Rejected").get_json()["claims"]
        assert [c["id"] for c in rejected] == [first["id"]]
        assert client.get("/employee/claims?q=blue").get_json()["claims"][0]["vendor"] == "Bluebird"

    def test_detail_hidden_from_other_users(self, client, login):
        claim = submit(client, login)
        assert client.get(f"/employee/claims/{claim['id']}").status_code == 200
        login("jane@example.com")
        assert client.get(f"/employee/claims/{claim['id']}").status_code == 404


class TestApprovalFlow:
    def test_manager_then_finance(self, client, login, sync_proposals):
        claim = submit(client, login)

        login("finance@example.com")
        assert client.get("/approvals").get_json()["claims"] == []

        login("jane@example.com")
        listed = client.get("/approvals").get_json()["claims"]
        assert [c["id"] for c in listed] == [claim["id"]]
        assert listed[0]["pending_for_me"] is True

        resp = client.post(f"/approvals/{claim['id']}/approve", json={"comment": "ok", "step_index": 1})
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["message"] == "Claim approved. Forwarded to next approver."
        assert body["claim"]["status"] == "ManagerApproved"
        assert body["claim"]["pending_for_me"] is False

        login("finance@example.com")
        pending = client.get("/approvals").get_json()["claims"][0]
        assert pending["accounting_proposal"]["gl_account"]["account_code"] == "6100"

        resp = client.post(f"/approvals/{claim['id']}/approve", json={})
        assert resp.get_json()["message"] == "Claim fully approved."
        assert resp.get_json()["claim"]["status"] == "FinanceApproved"

    def test_wrong_user_is_forbidden(self, client, login):
        claim = submit(client, login)
        login("cfo@example.com")
        resp = client.post(f"/approvals/{claim['id']}/approve")
        assert resp.status_code == 403
        assert claim_store.get(claim["id"]).current_step_index == 1

    def test_double_submit_conflicts(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        url = f"/approvals/{claim['id']}/approve"
        assert client.post(url, json={"step_index": 1}).status_code == 200
        resp = client.post(url, json={"step_index": 1})
        assert resp.status_code == 409
        assert claim_store.get(claim["id"]).current_step_index == 2

    def test_finalized_claim_conflicts(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        client.post(f"/approvals/{claim['id']}/reject", json={"comment": "no receipt"})
        login("finance@example.com")
        resp = client.post(f"/approvals/{claim['id']}/approve")
        assert resp.status_code == 409

    def test_unknown_claim(self, client, login):
        login("jane@example.com")
        assert client.post("/approvals/missing/approve").status_code == 404

    def test_summary(self, client, login):
        first = submit(client, login, amount="100")
        submit(client, login, amount="250")
        login("jane@example.com")
        client.post(f"/approvals/{first['id']}/approve")

        body = client.get("/approvals/summary").get_json()
        assert body == {
            "pending_count": 1,
            "pending_amount": 250.0,
            "acted_count": 1,
            "approved_amount": 100.0,
        }


class TestFinanceActions:
    def _approved_claim(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        client.post(f"/approvals/{claim['id']}/approve")
        login("finance@example.com")
        client.post(f"/approvals/{claim['id']}/approve")
        return claim

    def test_post_uses_proposal(self, client, login, sync_proposals):
        claim = self._approved_claim(client, login)
        resp = client.post(
            f"/approvals/{claim['id']}/post",
            json={"create_ap_transaction": True, "post_journal_entry": True},
        )
        assert resp.status_code == 201
        posting = resp.get_json()["posting"]
        assert posting["gl_account_code"] == "6100"
        assert posting["journal_entry"]["debit_amount"] == 100.0
        assert ledger.get(claim["id"]) is not None

        again = client.post(f"/approvals/{claim['id']}/post", json={"post_journal_entry": True})
        assert again.status_code == 422

    def test_unbalanced_override_is_refused_but_approval_stands(self, client, login, sync_proposals):
        claim = self._approved_claim(client, login)
        entry = {"debit_account": "6100", "debit_amount": 100, "credit_account": "2100", "credit_amount": 90}
        resp = client.post(
            f"/approvals/{claim['id']}/post",
            json={"post_journal_entry": True, "journal_entry": entry},
        )
        assert resp.status_code == 422
        assert claim_store.get(claim["id"]).status.value == "FinanceApproved"
        assert ledger.get(claim["id"]) is None

    def test_posting_requires_finance_role(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        resp = client.post(f"/approvals/{claim['id']}/post", json={"post_journal_entry": True})
        assert resp.status_code == 403

    def test_csv_export(self, client, login):
        self._approved_claim(client, login)
        resp = client.get("/approvals/export.csv")
        assert resp.mimetype == "text/csv"
        lines = resp.get_data(as_text=True).splitlines()
        assert lines[0].startswith("ID,Date,Vendor")
        assert len(lines) == 2
        assert lines[1].endswith("FinanceApproved,Normal")

    def test_voucher_access(self, client, login):
        claim = self._approved_claim(client, login)
        voucher = client.get(f"/approvals/{claim['id']}/voucher").get_json()["voucher"]
        assert voucher["title"] == "Expense Voucher"

        text = client.get(f"/approvals/{claim['id']}/voucher?format=text")
        assert text.mimetype == "text/plain"
        assert "Approval History" in text.get_data(as_text=True)

        login("ceo@example.com")
        assert client.get(f"/approvals/{claim['id']}/voucher").status_code == 403


class TestOrganizationSetup:
    ORG = {
        "users": [
            {"id": "a", "name": "Ann", "email": "ann@example.com", "role": "Requester"},
            {"id": "f", "name": "Fay", "email": "fay@example.com", "role": "Finance"},
        ],
        "limits": {"manager": 10, "cfo": 5000, "ceo": 1000},
    }

    def test_requester_cannot_replace(self, client, login):
        login("john@example.com")
        assert client.put("/admin/organization", json=self.ORG).status_code == 403
        assert client.get("/admin/organization").status_code == 200

    def test_replace_returns_warnings_and_applies(self, client, login):
        login("finance@example.com")
        resp = client.put("/admin/organization", json=self.ORG)
        assert resp.status_code == 200
        assert resp.get_json()["warnings"] == ["Approval limits should satisfy manager < cfo < ceo."]

        login("ann@example.com")
        claim = client.post("/employee/claims", json=CLAIM).get_json()["claim"]
        assert [step["approver_role"] for step in claim["approval_chain"]] == ["Requester", "Finance"]

    def test_bad_payload(self, client, login):
        login("cfo@example.com")
        assert client.put("/admin/organization", json={"users": "nope"}).status_code == 400


class TestExtraction:
    def test_requires_files(self, client, login):
        login("john@example.com")
        assert client.post("/employee/claims/extract", data={}).status_code == 400

    def test_prefills_from_service(self, client, login):
        login("john@example.com")
        response = MagicMock(status_code=200, ok=True)
        response.json.return_value = {"success": True, "data": {"vendor": "Grab", "amount": 45000}}

        with patch.object(extraction_service.requests, "post", return_value=response):
            resp = client.post(
                "/employee/claims/extract",
                data={"files": (io.BytesIO(b"img"), "receipt.png")},
                content_type="multipart/form-data",
            )

        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["fields"] == {"vendor": "Grab", "amount": 45000}


class TestProposalGeneration:
    SOLO_ORG = {
        "users": [
            {"id": "a", "name": "Ann", "email": "ann@example.com", "role": "Requester"},
            {"id": "f", "name": "Fay", "email": "fay@example.com", "role": "Finance"},
        ],
        "limits": {"manager": 1000, "cfo": 5000, "ceo": 10000},
    }

    def _at_finance(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        client.post(f"/approvals/{claim['id']}/approve")
        login("finance@example.com")
        return claim

    def test_claim_submitted_straight_to_finance_gets_proposal(self, client, login, sync_proposals):
        login("finance@example.com")
        assert client.put("/admin/organization", json=self.SOLO_ORG).status_code == 200

        login("ann@example.com")
        claim = client.post("/employee/claims", json=CLAIM).get_json()["claim"]
        assert claim["current_step_index"] == 1

        login("fay@example.com")
        listed = client.get("/approvals").get_json()["claims"]
        assert listed[0]["accounting_proposal"]["gl_account"]["account_code"] == "6100"

    def test_finance_can_generate_on_demand(self, client, login):
        claim = self._at_finance(client, login)
        resp = client.post(f"/approvals/{claim['id']}/proposal")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["proposal"]["status"] == "completed"
        assert body["proposal"]["journal_entry"]["credit_account"] == "2100 - Accounts Payable"
        assert claim_store.get(claim["id"]).accounting_proposal is not None
        assert body["claim"]["status"] == "ManagerApproved"

        client.post(f"/approvals/{claim['id']}/approve")
        posted = client.post(f"/approvals/{claim['id']}/post", json={"create_ap_transaction": True})
        assert posted.status_code == 201

    def test_generation_is_finance_only(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        assert client.post(f"/approvals/{claim['id']}/proposal").status_code == 403

    def test_generation_refused_for_rejected_or_unknown_claims(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        client.post(f"/approvals/{claim['id']}/reject", json={"comment": "duplicate"})
        login("finance@example.com")
        assert client.post(f"/approvals/{claim['id']}/proposal").status_code == 409
        assert client.post("/approvals/missing/proposal").status_code == 404


class TestRejectionReason:
    @pytest.mark.parametrize("payload", [None, {}, {"comment": "   "}])
    def test_reject_requires_reason(self, client, login, payload):
        claim = submit(client, login)
        login("jane@example.com")
        resp = client.post(f"/approvals/{claim['id']}/reject", json=payload)

        assert resp.status_code == 400
        assert "comment" in resp.get_json()["fields"]
        assert claim_store.get(claim["id"]).status.value == "Submitted"

    def test_approve_needs_no_comment(self, client, login):
        claim = submit(client, login)
        login("jane@example.com")
        assert client.post(f"/approvals/{claim['id']}/approve").status_code == 200
