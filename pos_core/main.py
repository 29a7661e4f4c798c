"""FastAPI entrypoint for the outlet POS order core."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from pos_core.api.v1.api import api_router, ws_router
from pos_core.core.config import settings
from pos_core.db import session as db_session
from pos_core.db.base import Base
from pos_core.db.seed import ensure_seed_data
from pos_core.realtime import hub as realtime_hub
from pos_core.services.errors import OrderError

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")
app.include_router(ws_router)


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "internal server error", "code": "storage_error"})


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=db_session.engine)
    if settings.seed_demo_data:
        with db_session.SessionLocal() as session:
            try:
                ensure_seed_data(session)
            except SQLAlchemyError:
                session.rollback()
                logger.exception("[BOOTSTRAP] Demo seed failed; continuing startup.")
    logger.info("Started %s (env=%s)", settings.app_name, settings.app_env)


@app.on_event("shutdown")
def shutdown() -> None:
    realtime_hub.event_hub.close_all()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
