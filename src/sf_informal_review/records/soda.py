from __future__ import annotations

import logging
import re
from typing import List, Optional

import httpx

from ..config import AppConfig
from ..errors import SourceUnavailable
from .base import RawRow, RecordSource
from .filters import Circle, Condition, OrderBy, RecordFilter

logger = logging.getLogger("sfir.records")

_FIELD_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _escape(value: object) -> str:
    return str(value).replace("'", "''")


def _field(name: str) -> str:
    if not _FIELD_RE.match(name or ""):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def compile_condition(cond: Condition) -> str:
    field = _field(cond.field)
    if cond.op == "equals":
        return f"{field}='{_escape(cond.value)}'"
    if cond.op == "not_equals":
        return f"{field} != '{_escape(cond.value)}'"
    if cond.op == "contains":
        return f"{field} like '%{_escape(cond.value)}%'"
    if cond.op == "in_list":
        parts = [f"{field}='{_escape(v)}'" for v in cond.value]
        return "(" + " OR ".join(parts) + ")"
    if cond.op == "gt":
        return f"{field} > '{_escape(cond.value)}'"
    if cond.op == "not_null":
        return f"{field} IS NOT NULL"
    if cond.op == "within_circle":
        circle: Circle = cond.value
        return f"within_circle({field}, {circle.latitude}, {circle.longitude}, {circle.meters})"
    raise ValueError(f"Unsupported operator: {cond.op}")


def compile_where(where: RecordFilter) -> str:
    return " AND ".join(compile_condition(c) for c in where.conditions)


def compile_order(order: OrderBy) -> str:
    return f"{_field(order.field)} {'DESC' if order.descending else 'ASC'}"


class SodaRecordSource(RecordSource):
    """Socrata Open Data (SODA) client for the Assessor historical roll."""

    name = "sf-opendata"

    def __init__(
        self,
        dataset_url: str,
        *,
        app_token: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.dataset_url = dataset_url
        self.app_token = app_token
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: AppConfig) -> "SodaRecordSource":
        return cls(
            config.dataset_url,
            app_token=config.app_token,
            timeout_s=config.http_timeout_s,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.app_token:
                headers["X-App-Token"] = self.app_token
            self._client = httpx.AsyncClient(headers=headers, timeout=self.timeout_s)
        return self._client

    def build_params(
        self,
        where: RecordFilter,
        *,
        limit: int,
        order: Optional[OrderBy] = None,
    ) -> dict:
        params = {"$limit": str(max(1, int(limit)))}
        where_sql = compile_where(where)
        if where_sql:
            params["$where"] = where_sql
        if order is not None:
            params["$order"] = compile_order(order)
        return params

    async def query(
        self,
        where: RecordFilter,
        *,
        limit: int,
        order: Optional[OrderBy] = None,
    ) -> List[RawRow]:
        params = self.build_params(where, limit=limit, order=order)
        logger.debug("soda query", extra={"params": params})
        try:
            resp = await self._get_client().get(self.dataset_url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("assessor feed request failed: %s", exc)
            raise SourceUnavailable(f"SF OpenData request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("assessor feed returned HTTP %s", resp.status_code)
            raise SourceUnavailable(
                f"SF OpenData API error: {resp.status_code} {resp.reason_phrase}",
                status=resp.status_code,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise SourceUnavailable("SF OpenData returned malformed JSON", status=resp.status_code) from exc
        if not isinstance(payload, list):
            raise SourceUnavailable("SF OpenData returned an unexpected payload", status=resp.status_code)
        return [row for row in payload if isinstance(row, dict)]

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
