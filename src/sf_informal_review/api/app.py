from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from sf_informal_review.case import CaseRegistry
from sf_informal_review.config import AppConfig, get_config
from sf_informal_review.policy import DEFAULT_POLICY, FilingPolicy
from sf_informal_review.records.base import RecordSource
from sf_informal_review.records.soda import SodaRecordSource
from sf_informal_review.service import AppealService


def health():
    return {"status": "ok"}


def create_app(
    record_source: Optional[RecordSource] = None,
    policy: FilingPolicy = DEFAULT_POLICY,
    config: Optional[AppConfig] = None,
    service: Optional[AppealService] = None,
) -> FastAPI:
    """Build the API around one service and an empty case registry.

    Without an explicit record source the live assessor feed is used.
    """

    config = config or get_config()
    if service is None:
        source = record_source or SodaRecordSource.from_config(config)
        service = AppealService(source, config=config, policy=policy)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await service.source.aclose()

    app = FastAPI(title="SF informal review", lifespan=lifespan)
    app.state.service = service
    app.state.registry = CaseRegistry()

    from sf_informal_review.api.routes.cases import router as cases_router
    from sf_informal_review.api.routes.reference import router as reference_router

    app.include_router(cases_router, prefix="/api")
    app.include_router(reference_router, prefix="/api")

    @app.get("/health")
    def health_route():
        return health()

    return app


app = create_app()
