from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import api_router
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.core.sentry import init_sentry
from app.core.startup_checks import validate_startup_settings
from app.middleware import RequestLoggingMiddleware
from app.schemas.error import ErrorResponse
from app.services import coupon_expiration_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    coupon_expiration_scheduler.start(app)
    try:
        yield
    finally:
        await coupon_expiration_scheduler.stop(app)


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    init_sentry()
    validate_startup_settings()
    tags_metadata = [
        {"name": "coupons", "description": "Donation coupons, expiry sweep and flat draws"},
        {"name": "awards", "description": "Weighted draws and award announcements"},
        {"name": "donations", "description": "Donation completion"},
        {"name": "health", "description": "Liveness and readiness"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
        swagger_ui_parameters={"displayRequestDuration": True},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api/v1")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse(detail=exc.detail, code=getattr(exc, "code", None))
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(payload.model_dump()),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        payload = ErrorResponse(detail=errors, code="validation_error")
        return JSONResponse(status_code=422, content=payload.model_dump())

    return app


app = get_application()
