import asyncio
import logging

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from multipart_api.api.deps import require_api_key
from multipart_api.api.routers.admin import router as admin_router
from multipart_api.api.routers.uploads import router as uploads_router
from multipart_api.app.services.upload_service import UploadService
from multipart_api.common.config import Settings, get_settings
from multipart_api.common.logging import setup_logging
from multipart_api.domain.sessions import InMemorySessionRegistry, SessionRegistry
from multipart_api.infra.observability.metrics import metrics_app
from multipart_api.infra.observability.middleware import MetricsMiddleware
from multipart_api.infra.storage.client import StorageClient

ERROR_CODE_BY_STATUS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    500: "internal_error",
    503: "service_unavailable",
}


def _normalize_detail(detail):
    if isinstance(detail, dict):
        maybe_code = detail.get("error_code")
        cleaned = {k: v for k, v in detail.items() if k != "error_code"}
        if len(cleaned) == 1 and "message" in cleaned:
            cleaned = cleaned["message"]
        if not cleaned:
            cleaned = None
        return cleaned, maybe_code if isinstance(maybe_code, str) else None
    return detail, None


def _resolve_error_code(status_code: int, override: str | None = None) -> str:
    if override:
        return override
    if status_code == 422:
        return "validation_error"
    return ERROR_CODE_BY_STATUS.get(status_code, "unknown_error")


def _describe_storage_target(settings: Settings) -> str:
    endpoint = settings.S3_ENDPOINT_URL or "aws"
    bucket = settings.S3_BUCKET or "<unset>"
    return f"storage_endpoint={endpoint}, bucket={bucket}, region={settings.S3_REGION}"


async def _sweep_expired_sessions(
    upload_service: UploadService, interval_seconds: int
) -> None:
    logger = logging.getLogger("uploads")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(upload_service.expire_stale_sessions)
        except Exception:
            logger.exception("Upload session sweep failed")


def create_app(
    *,
    storage_client: StorageClient | None = None,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    settings = get_settings()
    setup_logging()
    app = FastAPI(
        title="Multipart Upload Service",
        version="1.0.0",
        description="Pre-signed multipart uploads to S3-compatible storage",
    )
    app.state.upload_service = UploadService(
        registry=registry if registry is not None else InMemorySessionRegistry(),
        storage_client=storage_client,
        settings=settings,
    )
    app.state.sweep_task = None

    if settings.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS or ["*"],
            allow_credentials=bool(settings.CORS_ORIGINS),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Routers
    app.include_router(
        uploads_router,
        tags=["uploads"],
        dependencies=[Depends(require_api_key)],
    )
    app.include_router(admin_router, tags=["admin"])

    # Metrics
    if settings.ENABLE_METRICS:
        app.add_middleware(MetricsMiddleware)
        app.mount("/metrics", metrics_app)

    @app.on_event("startup")
    async def on_startup() -> None:
        startup_logger = logging.getLogger("multipart_api.startup")
        storage_context = _describe_storage_target(settings)
        try:
            # resolve credentials once, before the first request
            app.state.upload_service.storage
        except Exception as exc:
            startup_logger.error(
                "Storage backend is not usable, aborting startup. (%s, error=%s)",
                storage_context,
                exc,
            )
            raise
        startup_logger.info("Storage backend configured. (%s)", storage_context)

        interval = int(settings.SESSION_SWEEP_INTERVAL_SECONDS)
        if interval > 0:
            app.state.sweep_task = asyncio.create_task(
                _sweep_expired_sessions(app.state.upload_service, interval)
            )
            startup_logger.info(
                "Upload session sweep scheduled. (interval=%ss, ttl=%ss)",
                interval,
                settings.SESSION_TTL_SECONDS,
            )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        task = app.state.sweep_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            app.state.sweep_task = None
        live = len(app.state.upload_service.registry)
        if live:
            logging.getLogger("multipart_api.startup").warning(
                "Shutting down with %d unfinished upload sessions; they are abandoned.",
                live,
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger = logging.getLogger("http")
        normalized_detail, code_override = _normalize_detail(exc.detail)
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "http_exception status=%s detail=%s method=%s path=%s request_id=%s",
            exc.status_code,
            normalized_detail,
            request.method,
            request.url.path,
            request.headers.get("X-Request-Id"),
            extra={
                "extra": {
                    "status": exc.status_code,
                    "detail": normalized_detail,
                    "method": request.method,
                    "route": request.url.path,
                    "request_id": request.headers.get("X-Request-Id"),
                }
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            media_type="application/problem+json",
            headers=getattr(exc, "headers", None),
            content={
                "type": "about:blank",
                "title": "HTTP Error",
                "status": exc.status_code,
                "detail": normalized_detail,
                "error_code": _resolve_error_code(exc.status_code, code_override),
                "instance": str(request.url),
                "request_id": request.headers.get("X-Request-Id"),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return JSONResponse(
            status_code=422,
            media_type="application/problem+json",
            content={
                "type": "about:blank",
                "title": "Validation Error",
                "status": 422,
                "detail": jsonable_encoder(exc.errors()),
                "error_code": _resolve_error_code(422),
                "instance": str(request.url),
                "request_id": request.headers.get("X-Request-Id"),
            },
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("multipart_api.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
