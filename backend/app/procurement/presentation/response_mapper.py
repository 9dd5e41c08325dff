from typing import Any, Dict, Optional

from app.procurement.application.use_cases import ApprovalSummary, RequestDetails
from app.procurement.domain.models import ApprovalAction, ApprovalStep, ProcurementRequest


def approval_step_to_response(step: Optional[ApprovalStep]) -> Optional[Dict[str, Any]]:
    if step is None:
        return None
    return {
        "level": step.level,
        "role": step.role,
        "department": step.department,
        "title": step.title,
        "condition": (
            {"type": step.condition.type, "description": step.condition.description}
            if step.condition
            else None
        ),
    }


def approval_action_to_response(action: ApprovalAction) -> Dict[str, Any]:
    return {
        "level": action.level,
        "action": action.action.value,
        "by": action.by,
        "department": action.department,
        "note": action.note,
        "reason": action.reason,
        "timestamp": action.timestamp.isoformat(),
        "inventory_check": (
            {"result": action.inventory_check.result, "note": action.inventory_check.note}
            if action.inventory_check
            else None
        ),
    }


def procurement_request_to_response(request: ProcurementRequest) -> Dict[str, Any]:
    return {
        "id": request.id,
        "title": request.title,
        "description": request.description,
        "type": request.type.value,
        "priority": request.priority.value,
        "department": request.department,
        "budget": str(request.budget),
        "currency": request.currency,
        "quantity": request.quantity,
        "unit": request.unit,
        "status": request.status.value,
        "current_approval_level": request.current_approval_level,
        "approval_hierarchy": [approval_step_to_response(step) for step in request.approval_hierarchy],
        "approval_history": [approval_action_to_response(action) for action in request.approval_history],
        "created_by": request.created_by,
        "created_at": request.created_at.isoformat() if request.created_at else None,
        "required_by": request.required_by.isoformat() if request.required_by else None,
        "specifications": request.specifications,
        "justification": request.justification,
        "vendor_preference": request.vendor_preference,
        "attachment_count": request.attachment_count,
    }


def approval_summary_to_response(summary: ApprovalSummary) -> Dict[str, Any]:
    return {
        "current_level": summary.current_level,
        "current_step": approval_step_to_response(summary.current_step),
        "can_act": summary.can_act,
        "steps": [
            {**approval_step_to_response(view.step), "state": view.state}
            for view in summary.steps
        ],
    }


def request_details_to_response(details: RequestDetails) -> Dict[str, Any]:
    response = procurement_request_to_response(details.request)
    response["approval"] = approval_summary_to_response(details.approval)
    return response
