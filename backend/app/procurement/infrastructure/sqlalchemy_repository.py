import logging
from datetime import datetime, timezone
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.procurement.application.ports import RequestRepository
from app.procurement.domain.errors import PersistenceError
from app.procurement.domain.models import ProcurementRequest
from app.procurement.infrastructure.memory_repository import DEFAULT_STORE_KEY
from app.procurement.infrastructure.request_codec import dumps_requests, loads_requests
from database import KeyValueEntry

logger = logging.getLogger(__name__)


class SqlAlchemyRequestRepository(RequestRepository):
    """Stores the serialized request list as a single row of ``key_value_store``."""

    def __init__(self, session: AsyncSession, key: str = DEFAULT_STORE_KEY) -> None:
        self._session = session
        self._key = key

    async def load_all(self) -> List[ProcurementRequest]:
        try:
            result = await self._session.execute(
                select(KeyValueEntry.value).where(KeyValueEntry.key == self._key)
            )
            blob = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(f"Failed to read procurement requests: {exc}")
            raise PersistenceError("Failed to load procurement requests") from exc
        return loads_requests(blob)

    async def save_all(self, requests: Sequence[ProcurementRequest]) -> None:
        blob = dumps_requests(requests)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        try:
            entry = await self._session.get(KeyValueEntry, self._key)
            if entry is None:
                self._session.add(KeyValueEntry(key=self._key, value=blob, updated_at=now))
            else:
                entry.value = blob
                entry.updated_at = now
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error(f"Failed to write procurement requests: {exc}")
            raise PersistenceError("Failed to save procurement requests") from exc
