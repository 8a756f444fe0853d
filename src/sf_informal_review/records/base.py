from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .filters import OrderBy, RecordFilter

RawRow = Dict[str, Any]


class RecordSource(ABC):
    """Read-only access to assessor roll rows.

    Implementations raise ``SourceUnavailable`` when the feed fails; nothing
    here retries.
    """

    name: str = "records"

    @abstractmethod
    async def query(
        self,
        where: RecordFilter,
        *,
        limit: int,
        order: Optional[OrderBy] = None,
    ) -> List[RawRow]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
