import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence


class RequestStatus(str, enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING_APPROVAL


class ApprovalDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestType(str, enum.Enum):
    HARDWARE = "hardware"
    SOFTWARE = "software"
    SERVICES = "services"
    SUPPLIES = "supplies"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UserRole:
    HEAD = "head"
    MANAGER = "manager"
    NORMAL = "normal"
    VIEW = "view"


class StepRole:
    MANAGER = "manager"
    HEAD = "head"
    DIRECTOR = "director"
    CEO = "ceo"


UNITS = ("pieces", "units", "licenses", "hours", "months")
CURRENCIES = ("PKR", "USD", "EUR")


@dataclass(frozen=True)
class UserSummary:
    id: str
    name: str
    role: str
    department: Optional[str] = None


@dataclass(frozen=True)
class ApprovalCondition:
    type: str
    description: str


@dataclass(frozen=True)
class ApprovalStep:
    level: int
    role: str
    department: Optional[str]
    title: str
    condition: Optional[ApprovalCondition] = None


@dataclass(frozen=True)
class InventoryCheck:
    result: str
    note: str


@dataclass(frozen=True)
class ApprovalAction:
    level: int
    action: ApprovalDecision
    by: str
    department: Optional[str]
    timestamp: datetime
    note: Optional[str] = None
    reason: Optional[str] = None
    inventory_check: Optional[InventoryCheck] = None


@dataclass(frozen=True)
class ProcurementRequest:
    id: str
    title: str
    description: str
    type: RequestType
    priority: Priority
    department: Optional[str]
    budget: Decimal
    currency: str
    quantity: int
    unit: str
    status: RequestStatus
    current_approval_level: int
    created_by: str
    created_at: datetime
    approval_hierarchy: Sequence[ApprovalStep] = field(default_factory=tuple)
    approval_history: Sequence[ApprovalAction] = field(default_factory=tuple)
    required_by: Optional[date] = None
    specifications: str = ""
    justification: str = ""
    vendor_preference: str = ""
    attachment_count: int = 0


@dataclass(frozen=True)
class RequestFilters:
    status: Optional[str] = None
    type: Optional[str] = None
    department: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0

    def matches(self, request: ProcurementRequest) -> bool:
        if self.status and request.status.value != self.status:
            return False
        if self.type and request.type.value != self.type:
            return False
        if self.department and request.department != self.department:
            return False

        if self.search:
            needle = self.search.lower()
            return (
                needle in request.title.lower()
                or needle in request.description.lower()
                or needle in request.id.lower()
            )

        return True
