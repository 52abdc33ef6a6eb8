from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobtracker.api.routes import router as api_router
from jobtracker.config import get_settings
from jobtracker.db.init import init_database
from jobtracker.errors import ErrorCode, JobTrackerError
from jobtracker.logging_config import configure_logging

logger = logging.getLogger(__name__)


def error_response(exc: JobTrackerError) -> JSONResponse:
    settings = get_settings()
    payload = exc.to_payload(include_details=not settings.is_production_like)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder({"data": None, "error": payload}))


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(JobTrackerError)
    async def _handle_jobtracker_error(request: Request, exc: JobTrackerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]
        return error_response(
            JobTrackerError(ErrorCode.VALIDATION_FAILED, "Invalid request data", status_code=400, details=details)
        )

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
