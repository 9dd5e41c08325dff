import logging
from typing import Dict, List, MutableMapping, Optional, Sequence

from app.procurement.application.ports import RequestRepository
from app.procurement.domain.models import ProcurementRequest
from app.procurement.infrastructure.request_codec import dumps_requests, loads_requests

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "procurementRequests"


class InMemoryRequestRepository(RequestRepository):
    """Keeps the serialized request list in a plain key-value mapping."""

    def __init__(
        self,
        store: Optional[MutableMapping[str, str]] = None,
        key: str = DEFAULT_STORE_KEY,
    ) -> None:
        self.store: MutableMapping[str, str] = store if store is not None else {}
        self.key = key

    async def load_all(self) -> List[ProcurementRequest]:
        return loads_requests(self.store.get(self.key))

    async def save_all(self, requests: Sequence[ProcurementRequest]) -> None:
        self.store[self.key] = dumps_requests(requests)
        logger.debug(f"Stored {len(requests)} procurement requests under '{self.key}'")


# Process-wide store used when the service runs without a database.
SHARED_STORE: Dict[str, str] = {}
