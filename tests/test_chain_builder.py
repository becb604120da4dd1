from decimal import Decimal

import pytest

from claimflow.models import Bound, Role, StepStatus, Unbound, User
from claimflow.services.approval_engine import OrganizationConfigError, build_chain

from .conftest import FIXED_NOW


def roles(chain):
    return [step.approver_role for step in chain]


@pytest.mark.parametrize("amount", ["0", "1", "999.99", "1000"])
def test_amounts_up_to_manager_limit_have_no_executive_steps(org, users, amount):
    chain = build_chain(users["requester"], Decimal(amount), org)
    assert roles(chain) == [Role.REQUESTER, Role.MANAGER, Role.FINANCE]


@pytest.mark.parametrize("amount", ["1000.01", "3000", "5000"])
def test_amounts_between_manager_and_cfo_limit_do_not_escalate(org, users, amount):
    chain = build_chain(users["requester"], Decimal(amount), org)
    assert Role.CFO not in roles(chain)
    assert Role.CEO not in roles(chain)


def test_amount_exactly_at_ceo_limit_stops_at_cfo(org, users):
    chain = build_chain(users["requester"], Decimal("10000"), org)
    assert roles(chain) == [Role.REQUESTER, Role.MANAGER, Role.CFO, Role.FINANCE]


def test_amount_above_ceo_limit_has_every_tier_once_in_order(org, users):
    chain = build_chain(users["requester"], Decimal("10000.01"), org)
    assert roles(chain) == [Role.REQUESTER, Role.MANAGER, Role.CFO, Role.CEO, Role.FINANCE]


def test_requester_step_is_pre_approved_submission(org, users):
    chain = build_chain(users["requester"], Decimal("10"), org, now=FIXED_NOW)
    first = chain[0]
    assert first.status is StepStatus.APPROVED
    assert first.approver == Bound(Role.REQUESTER, "u1")
    assert first.comment == "Submitted"
    assert first.action_date == FIXED_NOW
    assert all(step.status is StepStatus.PENDING for step in chain[1:])


def test_manager_step_bound_to_reporting_line(org, users):
    chain = build_chain(users["requester"], Decimal("10"), org)
    assert chain[1].approver == Bound(Role.MANAGER, "u2")


def test_single_role_holder_is_bound_finance_stays_unbound(org, users):
    chain = build_chain(users["requester"], Decimal("20000"), org)
    assert chain[2].approver == Bound(Role.CFO, "u3")
    assert chain[3].approver == Bound(Role.CEO, "u4")
    assert chain[4].approver == Unbound(Role.FINANCE)


def test_ambiguous_role_holders_leave_step_unbound(orphan_org):
    requester = orphan_org.get_user("r1")
    chain = build_chain(requester, Decimal("20000"), orphan_org)
    assert roles(chain) == [Role.REQUESTER, Role.CFO, Role.CEO, Role.FINANCE]
    assert chain[1].approver == Unbound(Role.CFO)
    assert chain[2].approver == Bound(Role.CEO, "e1")


def test_requester_without_manager_goes_straight_to_finance(orphan_org):
    chain = build_chain(orphan_org.get_user("r1"), Decimal("50"), orphan_org)
    assert roles(chain) == [Role.REQUESTER, Role.FINANCE]


def test_dangling_manager_reference_is_skipped(org):
    ghost = User("u9", "Ghost Report", "ghost@example.com", Role.REQUESTER, manager_id="nobody")
    org_with_ghost = type(org)(org.users + [ghost], org.limits)
    chain = build_chain(ghost, Decimal("50"), org_with_ghost)
    assert roles(chain) == [Role.REQUESTER, Role.FINANCE]


def test_unknown_requester_is_a_configuration_error(org):
    stranger = User("x1", "Stranger", "x@example.com", Role.REQUESTER)
    with pytest.raises(OrganizationConfigError):
        build_chain(stranger, Decimal("10"), org)


def test_self_managed_requester_is_a_configuration_error(org):
    loop = User("u7", "Loop", "loop@example.com", Role.REQUESTER, manager_id="u7")
    looped_org = type(org)(org.users + [loop], org.limits)
    with pytest.raises(OrganizationConfigError):
        build_chain(loop, Decimal("10"), looped_org)


def test_default_limits_are_ordered(org):
    assert org.limits.is_ordered()
