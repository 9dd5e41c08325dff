"""
Approval engine for procurement demands.

``can_act_on`` is the only authorization rule for the approval chain: it
drives which actions are offered to a user and it gates ``approve`` and
``reject`` themselves.
"""
from dataclasses import replace
from datetime import datetime
from typing import Optional

from app.procurement.domain.errors import InvalidRequest, PermissionDenied, RequestClosed
from app.procurement.domain.hierarchy import (
    INVENTORY_CHECK_LEVEL,
    IT_DEPARTMENT,
    MANAGEMENT_DEPARTMENT,
    OPERATIONS_DEPARTMENT,
)
from app.procurement.domain.models import (
    ApprovalAction,
    ApprovalDecision,
    ApprovalStep,
    InventoryCheck,
    ProcurementRequest,
    RequestStatus,
    StepRole,
    UserRole,
    UserSummary,
)


def current_step(request: ProcurementRequest) -> Optional[ApprovalStep]:
    index = request.current_approval_level - 1
    if index < 0 or index >= len(request.approval_hierarchy):
        return None
    return request.approval_hierarchy[index]


def can_act_on(request: ProcurementRequest, user: Optional[UserSummary]) -> bool:
    if user is None or request.status.is_terminal:
        return False

    step = current_step(request)
    if step is None:
        return False

    if (
        step.role == StepRole.CEO
        and user.role == UserRole.HEAD
        and user.department == MANAGEMENT_DEPARTMENT
    ):
        return True

    if (
        step.role == StepRole.DIRECTOR
        and user.role == UserRole.HEAD
        and user.department == OPERATIONS_DEPARTMENT
    ):
        return True

    # Any IT member may resolve the IT step, whatever their role.
    if step.department == IT_DEPARTMENT and user.department == IT_DEPARTMENT:
        return True

    return user.role == step.role and user.department == step.department


def _ensure_actionable(request: ProcurementRequest, user: UserSummary) -> None:
    if request.status.is_terminal:
        raise RequestClosed(f"Request {request.id} is already {request.status.value}")
    if not can_act_on(request, user):
        raise PermissionDenied("You are not allowed to act on the current approval step")


def approve(
    request: ProcurementRequest,
    user: UserSummary,
    note: str,
    now: datetime,
) -> ProcurementRequest:
    _ensure_actionable(request, user)

    level = request.current_approval_level
    inventory_check = None
    if level == INVENTORY_CHECK_LEVEL:
        inventory_check = InventoryCheck(result="checked", note=note)

    action = ApprovalAction(
        level=level,
        action=ApprovalDecision.APPROVED,
        by=user.name,
        department=user.department,
        note=note,
        timestamp=now,
        inventory_check=inventory_check,
    )
    history = tuple(request.approval_history) + (action,)

    if level == len(request.approval_hierarchy):
        return replace(request, approval_history=history, status=RequestStatus.APPROVED)
    return replace(request, approval_history=history, current_approval_level=level + 1)


def reject(
    request: ProcurementRequest,
    user: UserSummary,
    reason: str,
    now: datetime,
) -> ProcurementRequest:
    if not reason or not reason.strip():
        raise InvalidRequest("A rejection reason is required")
    _ensure_actionable(request, user)

    action = ApprovalAction(
        level=request.current_approval_level,
        action=ApprovalDecision.REJECTED,
        by=user.name,
        department=user.department,
        reason=reason,
        timestamp=now,
    )
    return replace(
        request,
        approval_history=tuple(request.approval_history) + (action,),
        status=RequestStatus.REJECTED,
    )
