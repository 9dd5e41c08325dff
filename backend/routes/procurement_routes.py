"""
IT Procurement Routes
Demand raising, listing and the multi-level approval chain
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from typing import AsyncGenerator, Optional
from datetime import date, datetime, timezone
from decimal import Decimal
import io
import logging
import time

from database.config import postgres_settings
from database.connection import get_session_maker
from app.procurement.application.ports import RequestRepository
from app.procurement.application.use_cases import (
    ApproveRequestCommand,
    ApproveRequestUseCase,
    GetProcurementRequestUseCase,
    ListProcurementRequestsQuery,
    ListProcurementRequestsUseCase,
    RaiseDemandCommand,
    RaiseDemandUseCase,
    RejectRequestCommand,
    RejectRequestUseCase,
)
from app.procurement.domain.errors import (
    DomainError,
    InvalidRequest,
    NotFound,
    PermissionDenied,
    PersistenceError,
    RequestClosed,
    StaleRequest,
)
from app.procurement.domain.models import UserSummary
from app.procurement.infrastructure.memory_repository import SHARED_STORE, InMemoryRequestRepository
from app.procurement.infrastructure.sqlalchemy_repository import SqlAlchemyRequestRepository
from app.procurement.presentation.response_mapper import (
    procurement_request_to_response,
    request_details_to_response,
)
from routes.auth_routes import get_current_user_summary

logger = logging.getLogger(__name__)

# Create router
procurement_router = APIRouter(prefix="/api/procurement", tags=["IT Procurement"])


# ==================== PYDANTIC MODELS ====================

class DemandCreate(BaseModel):
    title: str = ""
    type: str = ""
    description: str = ""
    budget: Optional[Decimal] = None
    priority: str = "medium"
    currency: str = "PKR"
    quantity: int = 1
    unit: str = "pieces"
    required_by: Optional[date] = None
    specifications: str = ""
    justification: str = ""
    vendor_preference: str = ""
    attachment_count: int = 0


class ApproveData(BaseModel):
    note: str = ""
    expected_level: Optional[int] = None


class RejectData(BaseModel):
    reason: str = ""
    expected_level: Optional[int] = None


# ==================== DEPENDENCIES ====================

async def get_request_repository() -> AsyncGenerator[RequestRepository, None]:
    """Request store selected by PROCUREMENT_STORE_BACKEND"""
    key = postgres_settings.procurement_store_key
    if postgres_settings.procurement_store_backend == "memory":
        yield InMemoryRequestRepository(SHARED_STORE, key)
        return

    session_maker = get_session_maker()
    async with session_maker() as session:
        yield SqlAlchemyRequestRepository(session, key)


def generate_request_id() -> str:
    return f"PR-{int(time.time() * 1000)}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==================== HELPER FUNCTIONS ====================

def to_http_error(exc: DomainError) -> HTTPException:
    if isinstance(exc, PermissionDenied):
        return HTTPException(status_code=403, detail=exc.message)
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, StaleRequest):
        return HTTPException(status_code=409, detail=exc.message)
    if isinstance(exc, (InvalidRequest, RequestClosed)):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, PersistenceError):
        logger.error(f"Procurement store failure: {exc.message}")
        return HTTPException(status_code=500, detail="Procurement data could not be loaded or saved")
    return HTTPException(status_code=400, detail=exc.message)


def _filter_value(value: Optional[str]) -> Optional[str]:
    if not value or value == "all":
        return None
    return value


# ==================== PROCUREMENT ROUTES ====================

@procurement_router.post("/requests")
async def raise_demand(
    data: DemandCreate,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """Raise a new procurement demand"""
    use_case = RaiseDemandUseCase(
        repository=repository,
        id_generator=generate_request_id,
        clock=utc_now,
    )
    command = RaiseDemandCommand(
        title=data.title,
        type=data.type,
        description=data.description,
        budget=data.budget,
        priority=data.priority,
        currency=data.currency,
        quantity=data.quantity,
        unit=data.unit,
        required_by=data.required_by,
        specifications=data.specifications,
        justification=data.justification,
        vendor_preference=data.vendor_preference,
        attachment_count=data.attachment_count,
    )

    try:
        request = await use_case.execute(command, current_user)
    except DomainError as exc:
        raise to_http_error(exc)

    return procurement_request_to_response(request)


@procurement_router.get("/requests")
async def list_requests(
    status: Optional[str] = None,
    request_type: Optional[str] = Query(None, alias="type"),
    department: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """List procurement requests with optional filters"""
    query = ListProcurementRequestsQuery(
        status=_filter_value(status),
        type=_filter_value(request_type),
        department=_filter_value(department),
        search=search or None,
        limit=limit,
        offset=offset,
    )
    try:
        requests = await ListProcurementRequestsUseCase(repository).execute(query)
    except DomainError as exc:
        raise to_http_error(exc)

    return [procurement_request_to_response(req) for req in requests]


@procurement_router.get("/requests/export")
async def export_requests(
    status: Optional[str] = None,
    request_type: Optional[str] = Query(None, alias="type"),
    department: Optional[str] = None,
    search: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """Export procurement requests to Excel"""
    query = ListProcurementRequestsQuery(
        status=_filter_value(status),
        type=_filter_value(request_type),
        department=_filter_value(department),
        search=search or None,
        limit=10000,
    )
    try:
        requests = await ListProcurementRequestsUseCase(repository, max_limit=10000).execute(query)
    except DomainError as exc:
        raise to_http_error(exc)

    from openpyxl import Workbook
    from openpyxl.styles import Font, PatternFill, Border, Side

    wb = Workbook()
    ws = wb.active
    ws.title = "Procurement Requests"

    # Styles
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    # Headers
    headers = ['ID', 'Title', 'Type', 'Priority', 'Department', 'Budget', 'Currency',
               'Quantity', 'Unit', 'Status', 'Current Step', 'Created By', 'Created At']
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border

    # Data
    for row_num, req in enumerate(requests, 2):
        step_index = req.current_approval_level - 1
        step_title = req.approval_hierarchy[step_index].title if step_index < len(req.approval_hierarchy) else "-"
        values = [
            req.id,
            req.title,
            req.type.value,
            req.priority.value,
            req.department or "-",
            float(req.budget),
            req.currency,
            req.quantity,
            req.unit,
            req.status.value,
            step_title,
            req.created_by,
            req.created_at.strftime("%Y-%m-%d %H:%M"),
        ]
        for col, value in enumerate(values, 1):
            ws.cell(row=row_num, column=col, value=value).border = thin_border

    # Column widths
    for letter, width in zip("ABCDEFGHIJKLM", (18, 30, 12, 10, 16, 14, 10, 10, 10, 18, 22, 20, 18)):
        ws.column_dimensions[letter].width = width

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=procurement_requests_{datetime.now().strftime('%Y%m%d')}.xlsx"}
    )


@procurement_router.get("/requests/{request_id}")
async def get_request(
    request_id: str,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """Get a single request with its approval chain"""
    try:
        details = await GetProcurementRequestUseCase(repository).execute(request_id, current_user)
    except DomainError as exc:
        raise to_http_error(exc)

    return request_details_to_response(details)


@procurement_router.post("/requests/{request_id}/approve")
async def approve_request(
    request_id: str,
    data: ApproveData,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """Approve the current step of a request"""
    use_case = ApproveRequestUseCase(repository=repository, clock=utc_now)
    command = ApproveRequestCommand(
        request_id=request_id,
        note=data.note,
        expected_level=data.expected_level,
    )
    try:
        request = await use_case.execute(command, current_user)
    except DomainError as exc:
        raise to_http_error(exc)

    return procurement_request_to_response(request)


@procurement_router.post("/requests/{request_id}/reject")
async def reject_request(
    request_id: str,
    data: RejectData,
    current_user: UserSummary = Depends(get_current_user_summary),
    repository: RequestRepository = Depends(get_request_repository)
):
    """Reject a request at its current step"""
    use_case = RejectRequestUseCase(repository=repository, clock=utc_now)
    command = RejectRequestCommand(
        request_id=request_id,
        reason=data.reason,
        expected_level=data.expected_level,
    )
    try:
        request = await use_case.execute(command, current_user)
    except DomainError as exc:
        raise to_http_error(exc)

    return procurement_request_to_response(request)
