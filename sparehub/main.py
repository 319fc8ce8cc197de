import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sparehub.core.config import settings
from sparehub.core.errors import SpareHubError, validation_error_from
from sparehub.core.logging_config import setup_logging
from sparehub.db.session import Base, engine
from sparehub.models import Favorite, PartRequest  # noqa: F401
from sparehub.routers.favorites import router as favorites_router
from sparehub.routers.requests import router as requests_router

logger = logging.getLogger(__name__)


def _error_body(exc: SpareHubError) -> dict:
    body = {"success": False, "message": exc.message, "error": exc.error}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    return body


async def sparehub_error_handler(request: Request, exc: SpareHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # 400 вместо стандартного 422, формат как у остальных ошибок
    err = validation_error_from(list(exc.errors()))
    return JSONResponse(status_code=err.status_code, content=_error_body(err))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Server error", "error": str(exc)},
    )


def create_app(*, init_db: bool = True) -> FastAPI:
    setup_logging(settings.log_level)

    app = FastAPI(title="SpareHub Backend")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SpareHubError, sparehub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    if init_db:

        @app.on_event("startup")
        def on_startup():
            Base.metadata.create_all(bind=engine)
            logger.info("SpareHub API started")

    app.include_router(requests_router)
    app.include_router(favorites_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
