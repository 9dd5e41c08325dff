"""
Inventory Routes - read-only asset and ticket listings
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc

from database import get_postgres_session, Asset, Ticket

# Create router
inventory_router = APIRouter(prefix="/api", tags=["Inventory"])


def asset_to_response(asset: Asset) -> dict:
    return {
        "id": asset.id,
        "name": asset.name,
        "type": asset.type,
        "status": asset.status,
        "serial_number": asset.serial_number,
        "location": asset.location,
        "assigned_to": asset.assigned_to,
        "created_at": asset.created_at.isoformat() if asset.created_at else None,
    }


def ticket_to_response(ticket: Ticket) -> dict:
    return {
        "id": ticket.id,
        "title": ticket.title,
        "description": ticket.description,
        "priority": ticket.priority,
        "category": ticket.category,
        "status": ticket.status,
        "assigned_to": ticket.assigned_to,
        "created_at": ticket.created_at.isoformat() if ticket.created_at else None,
    }


@inventory_router.get("/assets")
async def get_assets(session: AsyncSession = Depends(get_postgres_session)):
    """Get all assets"""
    result = await session.execute(select(Asset).order_by(desc(Asset.created_at)))
    return [asset_to_response(asset) for asset in result.scalars().all()]


@inventory_router.get("/tickets")
async def get_tickets(session: AsyncSession = Depends(get_postgres_session)):
    """Get all tickets"""
    result = await session.execute(select(Ticket).order_by(desc(Ticket.created_at)))
    return [ticket_to_response(ticket) for ticket in result.scalars().all()]
