from typing import List, Optional, Protocol

from app.procurement.domain.models import ApprovalCondition, ApprovalStep, StepRole

IT_DEPARTMENT = "IT"
OPERATIONS_DEPARTMENT = "Operations"
MANAGEMENT_DEPARTMENT = "Management"

INVENTORY_CHECK_LEVEL = 4

INVENTORY_CHECK = ApprovalCondition(
    type="inventory_check",
    description="Check if item exists in inventory or proceed with vendor",
)


class ApprovalPolicy(Protocol):
    def build_hierarchy(self, department: Optional[str]) -> List[ApprovalStep]:
        ...


class StandardApprovalPolicy:
    """Six-step chain applied to every demand regardless of type or value.

    The first three steps stay inside the requester's department; the rest
    are routed to IT, Operations and Management.
    """

    def build_hierarchy(self, department: Optional[str]) -> List[ApprovalStep]:
        return [
            ApprovalStep(level=1, role=StepRole.MANAGER, department=department, title="Demand Raise"),
            ApprovalStep(level=2, role=StepRole.MANAGER, department=department, title="Manager Approval"),
            ApprovalStep(level=3, role=StepRole.HEAD, department=department, title="Head Approval"),
            ApprovalStep(
                level=INVENTORY_CHECK_LEVEL,
                role=StepRole.MANAGER,
                department=IT_DEPARTMENT,
                title="IT Department",
                condition=INVENTORY_CHECK,
            ),
            ApprovalStep(level=5, role=StepRole.DIRECTOR, department=OPERATIONS_DEPARTMENT, title="Director Operations"),
            ApprovalStep(level=6, role=StepRole.CEO, department=MANAGEMENT_DEPARTMENT, title="CEO"),
        ]
