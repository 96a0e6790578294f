from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from boxoffice.api.v1 import api_router
from boxoffice.core.config import settings
from boxoffice.core.logging_config import configure_logging
from boxoffice.middleware import RequestLoggingMiddleware
from boxoffice.schemas.error import ErrorResponse


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    tags_metadata = [
        {"name": "breakdown", "description": "Order financial breakdown"},
        {"name": "basket", "description": "Basket snapshot changes, refunds and exchanges"},
        {"name": "health", "description": "Liveness and readiness"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
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
        payload = ErrorResponse(detail=exc.detail, code=None, request_id=_request_id(request))
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(payload.model_dump()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        payload = ErrorResponse(detail=errors, code="validation_error", request_id=_request_id(request))
        return JSONResponse(status_code=422, content=jsonable_encoder(payload.model_dump()))

    return app


app = get_application()
