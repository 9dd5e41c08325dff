import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from app.procurement.application.ports import RequestRepository
from app.procurement.domain import approval
from app.procurement.domain.errors import InvalidRequest, NotFound, StaleRequest
from app.procurement.domain.hierarchy import ApprovalPolicy, StandardApprovalPolicy
from app.procurement.domain.models import (
    CURRENCIES,
    UNITS,
    ApprovalStep,
    Priority,
    ProcurementRequest,
    RequestFilters,
    RequestStatus,
    RequestType,
    UserSummary,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RaiseDemandCommand:
    title: str
    type: str
    description: str
    budget: Optional[Decimal]
    priority: str = Priority.MEDIUM.value
    currency: str = "PKR"
    quantity: int = 1
    unit: str = "pieces"
    required_by: Optional[date] = None
    specifications: str = ""
    justification: str = ""
    vendor_preference: str = ""
    attachment_count: int = 0


@dataclass(frozen=True)
class ListProcurementRequestsQuery:
    status: Optional[str] = None
    type: Optional[str] = None
    department: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class ApproveRequestCommand:
    request_id: str
    note: str = ""
    expected_level: Optional[int] = None


@dataclass(frozen=True)
class RejectRequestCommand:
    request_id: str
    reason: str
    expected_level: Optional[int] = None


@dataclass(frozen=True)
class ApprovalStepView:
    step: ApprovalStep
    state: str


@dataclass(frozen=True)
class ApprovalSummary:
    current_level: int
    current_step: Optional[ApprovalStep]
    can_act: bool
    steps: Sequence[ApprovalStepView]


@dataclass(frozen=True)
class RequestDetails:
    request: ProcurementRequest
    approval: ApprovalSummary


IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def summarize_approval(request: ProcurementRequest, user: Optional[UserSummary]) -> ApprovalSummary:
    steps = []
    for step in request.approval_hierarchy:
        if step.level < request.current_approval_level:
            state = "approved"
        elif step.level > request.current_approval_level:
            state = "pending"
        elif request.status == RequestStatus.PENDING_APPROVAL:
            state = "current"
        else:
            state = request.status.value
        steps.append(ApprovalStepView(step=step, state=state))

    return ApprovalSummary(
        current_level=request.current_approval_level,
        current_step=approval.current_step(request),
        can_act=approval.can_act_on(request, user),
        steps=steps,
    )


def _find(requests: Sequence[ProcurementRequest], request_id: str) -> Tuple[int, ProcurementRequest]:
    for index, request in enumerate(requests):
        if request.id == request_id:
            return index, request
    raise NotFound(f"Procurement request {request_id} not found")


def _check_expected_level(request: ProcurementRequest, expected_level: Optional[int]) -> None:
    if expected_level is not None and expected_level != request.current_approval_level:
        raise StaleRequest(
            f"Request {request.id} has moved to level {request.current_approval_level}; "
            "reload it before acting"
        )


class RaiseDemandUseCase:
    def __init__(
        self,
        repository: RequestRepository,
        id_generator: IdGenerator,
        clock: Clock,
        policy: Optional[ApprovalPolicy] = None,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock
        self._policy = policy or StandardApprovalPolicy()

    def _validate(self, command: RaiseDemandCommand, now: datetime) -> None:
        if (
            not command.title.strip()
            or not command.type
            or not command.description.strip()
            or command.budget is None
        ):
            raise InvalidRequest("Please fill in all required fields")

        if command.type not in {item.value for item in RequestType}:
            raise InvalidRequest(f"Unknown request type '{command.type}'")
        if command.priority not in {item.value for item in Priority}:
            raise InvalidRequest(f"Unknown priority '{command.priority}'")
        if command.unit not in UNITS:
            raise InvalidRequest(f"Unknown unit '{command.unit}'")
        if command.currency not in CURRENCIES:
            raise InvalidRequest(f"Unknown currency '{command.currency}'")

        if command.budget <= 0:
            raise InvalidRequest("Budget must be greater than zero")
        if command.quantity <= 0:
            raise InvalidRequest("Quantity must be greater than zero")
        if command.attachment_count < 0:
            raise InvalidRequest("Attachment count cannot be negative")

        if command.required_by and command.required_by < now.date():
            raise InvalidRequest("Required date cannot be in the past")

    async def execute(
        self,
        command: RaiseDemandCommand,
        current_user: UserSummary,
    ) -> ProcurementRequest:
        now = self._clock()
        self._validate(command, now)

        requests = await self._repository.load_all()
        request_id = self._id_generator()
        if any(existing.id == request_id for existing in requests):
            raise InvalidRequest(f"A request with id {request_id} already exists")

        request = ProcurementRequest(
            id=request_id,
            title=command.title.strip(),
            description=command.description.strip(),
            type=RequestType(command.type),
            priority=Priority(command.priority),
            department=current_user.department,
            budget=command.budget,
            currency=command.currency,
            quantity=command.quantity,
            unit=command.unit,
            status=RequestStatus.PENDING_APPROVAL,
            current_approval_level=1,
            approval_hierarchy=tuple(self._policy.build_hierarchy(current_user.department)),
            approval_history=(),
            created_by=current_user.name,
            created_at=now,
            required_by=command.required_by,
            specifications=command.specifications,
            justification=command.justification,
            vendor_preference=command.vendor_preference,
            attachment_count=command.attachment_count,
        )

        await self._repository.save_all([request, *requests])
        logger.info(f"Procurement request {request.id} raised by {current_user.name} ({current_user.department})")

        return request


class ListProcurementRequestsUseCase:
    def __init__(
        self,
        repository: RequestRepository,
        max_limit: int = 200,
    ) -> None:
        self._repository = repository
        self._max_limit = max_limit

    async def execute(self, query: ListProcurementRequestsQuery) -> Sequence[ProcurementRequest]:
        filters = RequestFilters(
            status=query.status,
            type=query.type,
            department=query.department,
            search=query.search,
            limit=max(1, min(query.limit, self._max_limit)),
            offset=max(0, query.offset),
        )

        requests = await self._repository.load_all()
        matching = [request for request in requests if filters.matches(request)]
        return matching[filters.offset:filters.offset + filters.limit]


class GetProcurementRequestUseCase:
    def __init__(self, repository: RequestRepository) -> None:
        self._repository = repository

    async def execute(self, request_id: str, current_user: Optional[UserSummary]) -> RequestDetails:
        _, request = _find(await self._repository.load_all(), request_id)
        return RequestDetails(request=request, approval=summarize_approval(request, current_user))


class ApproveRequestUseCase:
    def __init__(self, repository: RequestRepository, clock: Clock) -> None:
        self._repository = repository
        self._clock = clock

    async def execute(
        self,
        command: ApproveRequestCommand,
        current_user: UserSummary,
    ) -> ProcurementRequest:
        requests: List[ProcurementRequest] = await self._repository.load_all()
        index, request = _find(requests, command.request_id)
        _check_expected_level(request, command.expected_level)

        updated = approval.approve(request, current_user, command.note, self._clock())
        requests[index] = updated
        await self._repository.save_all(requests)

        if updated.status == RequestStatus.APPROVED:
            logger.info(f"Procurement request {updated.id} fully approved by {current_user.name}")
        else:
            logger.info(
                f"Procurement request {updated.id} approved at level {request.current_approval_level} "
                f"by {current_user.name}"
            )
        return updated


class RejectRequestUseCase:
    def __init__(self, repository: RequestRepository, clock: Clock) -> None:
        self._repository = repository
        self._clock = clock

    async def execute(
        self,
        command: RejectRequestCommand,
        current_user: UserSummary,
    ) -> ProcurementRequest:
        requests: List[ProcurementRequest] = await self._repository.load_all()
        index, request = _find(requests, command.request_id)
        _check_expected_level(request, command.expected_level)

        updated = approval.reject(request, current_user, command.reason, self._clock())
        requests[index] = updated
        await self._repository.save_all(requests)

        logger.info(
            f"Procurement request {updated.id} rejected at level {updated.current_approval_level} "
            f"by {current_user.name}"
        )
        return updated
