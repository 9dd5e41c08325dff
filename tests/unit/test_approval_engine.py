from datetime import datetime
from decimal import Decimal

import pytest

from app.procurement.domain import approval
from app.procurement.domain.errors import InvalidRequest, PermissionDenied, RequestClosed
from app.procurement.domain.hierarchy import StandardApprovalPolicy
from app.procurement.domain.models import (
    Priority,
    ProcurementRequest,
    RequestStatus,
    RequestType,
    UserSummary,
)

NOW = datetime(2026, 1, 17, 10, 0, 0)

FINANCE_MANAGER = UserSummary(id="u-1", name="Fin Manager", role="manager", department="Finance")
FINANCE_HEAD = UserSummary(id="u-2", name="Fin Head", role="head", department="Finance")
IT_ANALYST = UserSummary(id="u-3", name="IT Analyst", role="normal", department="IT")
OPERATIONS_HEAD = UserSummary(id="u-4", name="Ops Head", role="head", department="Operations")
MANAGEMENT_HEAD = UserSummary(id="u-5", name="Head User", role="head", department="Management")

CHAIN_ACTORS = [
    FINANCE_MANAGER,
    FINANCE_MANAGER,
    FINANCE_HEAD,
    IT_ANALYST,
    OPERATIONS_HEAD,
    MANAGEMENT_HEAD,
]


def make_request(department="Finance", level=1, status=RequestStatus.PENDING_APPROVAL):
    return ProcurementRequest(
        id="PR-1",
        title="Laptops",
        description="Replacement laptops",
        type=RequestType.HARDWARE,
        priority=Priority.HIGH,
        department=department,
        budget=Decimal("1500.00"),
        currency="PKR",
        quantity=3,
        unit="pieces",
        status=status,
        current_approval_level=level,
        created_by="Fin Manager",
        created_at=NOW,
        approval_hierarchy=tuple(StandardApprovalPolicy().build_hierarchy(department)),
    )


def test_hierarchy_has_six_steps_with_fixed_overrides():
    steps = StandardApprovalPolicy().build_hierarchy("Finance")

    assert [step.level for step in steps] == [1, 2, 3, 4, 5, 6]
    assert [step.title for step in steps] == [
        "Demand Raise",
        "Manager Approval",
        "Head Approval",
        "IT Department",
        "Director Operations",
        "CEO",
    ]
    assert [step.department for step in steps] == [
        "Finance", "Finance", "Finance", "IT", "Operations", "Management",
    ]
    assert steps[3].condition is not None
    assert steps[3].condition.type == "inventory_check"
    assert all(step.condition is None for step in steps if step.level != 4)


def test_head_of_management_acts_on_ceo_step_only():
    assert approval.can_act_on(make_request(level=6), MANAGEMENT_HEAD) is True
    assert approval.can_act_on(make_request(level=1), MANAGEMENT_HEAD) is False


def test_head_of_operations_acts_on_director_step():
    assert approval.can_act_on(make_request(level=5), OPERATIONS_HEAD) is True
    assert approval.can_act_on(make_request(level=6), OPERATIONS_HEAD) is False


def test_any_it_member_acts_on_it_step():
    request = make_request(level=4)

    assert approval.can_act_on(request, IT_ANALYST) is True
    assert approval.can_act_on(request, FINANCE_MANAGER) is False


def test_exact_role_and_department_required_elsewhere():
    request = make_request(level=3)

    assert approval.can_act_on(request, FINANCE_HEAD) is True
    assert approval.can_act_on(request, FINANCE_MANAGER) is False
    assert approval.can_act_on(request, None) is False


def test_terminal_request_cannot_be_acted_on():
    request = make_request(level=6, status=RequestStatus.APPROVED)

    assert approval.can_act_on(request, MANAGEMENT_HEAD) is False


def test_full_chain_approval_keeps_history_consistent():
    request = make_request()

    for actor in CHAIN_ACTORS:
        assert request.status == RequestStatus.PENDING_APPROVAL
        assert len(request.approval_history) <= request.current_approval_level
        request = approval.approve(request, actor, "ok", NOW)

    levels = [action.level for action in request.approval_history]
    assert levels == [1, 2, 3, 4, 5, 6]
    assert len(set(levels)) == len(levels)
    assert request.status == RequestStatus.APPROVED
    assert request.current_approval_level == 6


def test_final_approval_does_not_advance_past_hierarchy():
    request = approval.approve(make_request(level=6), MANAGEMENT_HEAD, "go ahead", NOW)

    assert request.status == RequestStatus.APPROVED
    assert request.current_approval_level == 6
    assert request.approval_history[-1].by == "Head User"
    assert request.approval_history[-1].department == "Management"


def test_it_step_records_inventory_check():
    request = make_request(department="Finance", level=4)
    assert request.approval_hierarchy[3].department == "IT"

    updated = approval.approve(request, IT_ANALYST, "not in stock", NOW)

    entry = updated.approval_history[-1]
    assert entry.level == 4
    assert entry.inventory_check is not None
    assert entry.inventory_check.result == "checked"
    assert entry.inventory_check.note == "not in stock"
    assert updated.current_approval_level == 5


def test_other_levels_have_no_inventory_check():
    updated = approval.approve(make_request(level=1), FINANCE_MANAGER, "", NOW)

    assert updated.approval_history[-1].inventory_check is None


def test_approve_requires_permission():
    request = make_request(level=2)

    with pytest.raises(PermissionDenied):
        approval.approve(request, IT_ANALYST, "ok", NOW)


def test_reject_requires_reason():
    request = make_request(level=2)

    with pytest.raises(InvalidRequest):
        approval.reject(request, FINANCE_MANAGER, "   ", NOW)


def test_rejection_is_terminal():
    rejected = approval.reject(make_request(level=2), FINANCE_MANAGER, "too expensive", NOW)

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.current_approval_level == 2
    assert rejected.approval_history[-1].reason == "too expensive"
    assert rejected.approval_history[-1].note is None

    with pytest.raises(RequestClosed):
        approval.approve(rejected, FINANCE_MANAGER, "changed my mind", NOW)
    with pytest.raises(RequestClosed):
        approval.reject(rejected, FINANCE_MANAGER, "again", NOW)
    assert len(rejected.approval_history) == 1


def test_engine_does_not_mutate_input():
    request = make_request()

    approval.approve(request, FINANCE_MANAGER, "ok", NOW)

    assert request.current_approval_level == 1
    assert request.approval_history == ()
