"""
Database package for PostgreSQL integration
"""
from .config import postgres_settings
from .connection import (
    Base,
    engine,
    async_session_maker,
    init_postgres_db,
    get_postgres_session,
    close_postgres_db
)
from .models import (
    User,
    KeyValueEntry,
    Asset,
    Ticket
)

__all__ = [
    # Config
    "postgres_settings",
    # Connection
    "Base",
    "engine",
    "async_session_maker",
    "init_postgres_db",
    "get_postgres_session",
    "close_postgres_db",
    # Models
    "User",
    "KeyValueEntry",
    "Asset",
    "Ticket"
]
