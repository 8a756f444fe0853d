from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from sf_informal_review.api.routes.cases import to_http_error
from sf_informal_review.api.schemas import EligibilityBody
from sf_informal_review.errors import AppealError

router = APIRouter(tags=["reference"])


@router.post("/eligibility")
def eligibility(body: EligibilityBody, request: Request) -> Dict[str, Any]:
    try:
        return request.app.state.service.check_eligibility(
            body.property_type, body.assessed_value, body.reference_value
        )
    except AppealError as exc:
        raise to_http_error(exc) from exc


@router.get("/submission-info")
def submission_info(request: Request) -> Dict[str, Any]:
    return request.app.state.service.submission_info()
