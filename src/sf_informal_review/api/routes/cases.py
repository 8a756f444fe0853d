from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from sf_informal_review.api.schemas import (
    ArgumentBody,
    ComparableBody,
    FindComparablesBody,
    PropertyBody,
    ResolvePropertyBody,
)
from sf_informal_review.case import CaseStateStore
from sf_informal_review.errors import AppealError
from sf_informal_review.service import AppealService

router = APIRouter(tags=["cases"])
logger = logging.getLogger("sfir.api")


def to_http_error(exc: AppealError) -> HTTPException:
    if exc.status_code >= 500:
        logger.warning("upstream failure: %s", exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())


def _service(request: Request) -> AppealService:
    return request.app.state.service


def _store(request: Request, case_id: str) -> CaseStateStore:
    try:
        return request.app.state.registry.get(case_id)
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.post("/cases", status_code=201)
def create_case(request: Request) -> Dict[str, Any]:
    case_id, store = request.app.state.registry.create()
    return {"case_id": case_id, "case": store.snapshot().to_dict()}


@router.get("/cases/{case_id}")
def get_case(case_id: str, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    return {"case_id": case_id, "case": store.snapshot().to_dict()}


@router.post("/cases/{case_id}/resolve-property")
async def resolve_property(case_id: str, body: ResolvePropertyBody, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).resolve_property(
            store,
            address=body.address,
            block=body.block,
            lot=body.lot,
            reference_value=body.reference_value,
        )
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.put("/cases/{case_id}/property")
async def manage_property(case_id: str, body: PropertyBody, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).manage_property(store, body.model_dump())
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.post("/cases/{case_id}/find-comparables")
async def find_comparables(case_id: str, body: FindComparablesBody, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).find_comparables(
            store, radius=body.radius, months_back=body.months_back, limit=body.limit
        )
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.post("/cases/{case_id}/comparables")
async def manage_comparable(case_id: str, body: ComparableBody, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).manage_comparable(store, body.action, body.comparable)
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.post("/cases/{case_id}/argument")
async def draft_argument(case_id: str, body: ArgumentBody, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).draft_argument(
            store, tone=body.tone, declared_value=body.declared_value
        )
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.get("/cases/{case_id}/packet")
async def build_packet(case_id: str, request: Request) -> Dict[str, Any]:
    store = _store(request, case_id)
    try:
        return await _service(request).build_packet(store)
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.get("/cases/{case_id}/packet/export", response_class=PlainTextResponse)
async def export_packet(case_id: str, request: Request) -> str:
    store = _store(request, case_id)
    try:
        return await _service(request).export_packet(store)
    except AppealError as exc:
        raise to_http_error(exc) from exc
