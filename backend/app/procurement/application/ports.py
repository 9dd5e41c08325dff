from typing import List, Protocol, Sequence

from app.procurement.domain.models import ProcurementRequest


class RequestRepository(Protocol):
    async def load_all(self) -> List[ProcurementRequest]:
        ...

    async def save_all(self, requests: Sequence[ProcurementRequest]) -> None:
        ...
