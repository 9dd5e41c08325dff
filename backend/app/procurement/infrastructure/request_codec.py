"""
JSON layout of the stored request list.

The whole list lives under a single key as one JSON array. Field names are
camelCase and optional fields are left out when empty, so decoding and
re-encoding a blob reproduces it byte for byte.
"""
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from app.procurement.domain.errors import PersistenceError
from app.procurement.domain.models import (
    ApprovalAction,
    ApprovalCondition,
    ApprovalDecision,
    ApprovalStep,
    InventoryCheck,
    Priority,
    ProcurementRequest,
    RequestStatus,
    RequestType,
)


def _step_to_dict(step: ApprovalStep) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "level": step.level,
        "role": step.role,
        "department": step.department,
        "title": step.title,
    }
    if step.condition is not None:
        data["condition"] = {
            "type": step.condition.type,
            "description": step.condition.description,
        }
    return data


def _action_to_dict(action: ApprovalAction) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "level": action.level,
        "action": action.action.value,
        "by": action.by,
        "department": action.department,
    }
    if action.note is not None:
        data["note"] = action.note
    if action.reason is not None:
        data["reason"] = action.reason
    data["timestamp"] = action.timestamp.isoformat()
    if action.inventory_check is not None:
        data["inventoryCheck"] = {
            "result": action.inventory_check.result,
            "note": action.inventory_check.note,
        }
    return data


def request_to_dict(request: ProcurementRequest) -> Dict[str, Any]:
    data: Dict[str, Any] = {
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
        "currentApprovalLevel": request.current_approval_level,
        "approvalHierarchy": [_step_to_dict(step) for step in request.approval_hierarchy],
        "approvalHistory": [_action_to_dict(action) for action in request.approval_history],
        "createdBy": request.created_by,
        "createdAt": request.created_at.isoformat(),
        "specifications": request.specifications,
        "justification": request.justification,
        "vendorPreference": request.vendor_preference,
        "attachmentCount": request.attachment_count,
    }
    if request.required_by is not None:
        data["requiredBy"] = request.required_by.isoformat()
    return data


def _object(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be a JSON object")
    return value


def _text(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


def _optional_text(data: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key, default)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


def _parse_datetime(value: Any) -> datetime:
    if not isinstance(value, str):
        raise TypeError("timestamps must be ISO-8601 strings")
    # Browser clients write UTC as a trailing "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _parse_budget(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError("'budget' must be a decimal string or number")
    return Decimal(str(value))


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _step_from_dict(raw: Any) -> ApprovalStep:
    data = _object(raw, "approval step")
    condition = data.get("condition")
    if condition:
        condition = _object(condition, "step condition")
    return ApprovalStep(
        level=int(data["level"]),
        role=_text(data, "role"),
        department=_optional_text(data, "department"),
        title=_text(data, "title"),
        condition=(
            ApprovalCondition(type=_text(condition, "type"), description=_text(condition, "description"))
            if condition
            else None
        ),
    )


def _action_from_dict(raw: Any) -> ApprovalAction:
    data = _object(raw, "approval action")
    inventory_check = data.get("inventoryCheck")
    if inventory_check:
        inventory_check = _object(inventory_check, "inventory check")
    return ApprovalAction(
        level=int(data["level"]),
        action=ApprovalDecision(data["action"]),
        by=_text(data, "by"),
        department=_optional_text(data, "department"),
        note=_optional_text(data, "note"),
        reason=_optional_text(data, "reason"),
        timestamp=_parse_datetime(data["timestamp"]),
        inventory_check=(
            InventoryCheck(result=_text(inventory_check, "result"), note=_text(inventory_check, "note"))
            if inventory_check
            else None
        ),
    )


def _list(data: Dict[str, Any], key: str, required: bool = False) -> List[Any]:
    value = data[key] if required else data.get(key, [])
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a JSON array")
    return value


def request_from_dict(raw: Any) -> ProcurementRequest:
    data = _object(raw, "procurement request")
    return ProcurementRequest(
        id=_text(data, "id"),
        title=_text(data, "title"),
        description=_text(data, "description"),
        type=RequestType(data["type"]),
        priority=Priority(data["priority"]),
        department=_optional_text(data, "department"),
        budget=_parse_budget(data["budget"]),
        currency=_text(data, "currency"),
        quantity=int(data["quantity"]),
        unit=_text(data, "unit"),
        status=RequestStatus(data["status"]),
        current_approval_level=int(data["currentApprovalLevel"]),
        approval_hierarchy=tuple(_step_from_dict(step) for step in _list(data, "approvalHierarchy", required=True)),
        approval_history=tuple(_action_from_dict(action) for action in _list(data, "approvalHistory")),
        created_by=_text(data, "createdBy"),
        created_at=_parse_datetime(data["createdAt"]),
        required_by=_parse_date(_optional_text(data, "requiredBy")),
        specifications=_optional_text(data, "specifications", ""),
        justification=_optional_text(data, "justification", ""),
        vendor_preference=_optional_text(data, "vendorPreference", ""),
        attachment_count=int(data.get("attachmentCount", 0)),
    )


def dumps_requests(requests: Sequence[ProcurementRequest]) -> str:
    return json.dumps(
        [request_to_dict(request) for request in requests],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def loads_requests(blob: Optional[str]) -> List[ProcurementRequest]:
    if not blob:
        return []
    try:
        raw = json.loads(blob)
        if not isinstance(raw, list):
            raise ValueError("stored requests must be a JSON array")
        return [request_from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as exc:
        raise PersistenceError(f"Stored procurement requests are corrupted: {exc}") from exc
