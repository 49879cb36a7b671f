from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import Settings, settings as default_settings
from app.core.constants import ReturnCode
from app.core.database import Database
from app.core.exceptions import ScheduleEngineError
from app.core.logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = Database(
            app.state.settings.DATABASE_URL, echo=app.state.settings.DATABASE_ECHO
        )
        await app.state.database.connect()
    logger.info("Application starting up", environment=app.state.settings.ENVIRONMENT)

    yield

    logger.info("Application shutting down")
    if owns_database:
        await app.state.database.dispose()
        app.state.database = None


def create_app(
    settings: Optional[Settings] = None, database: Optional[Database] = None
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.database = database

    @application.exception_handler(ScheduleEngineError)
    async def schedule_engine_error_handler(
        request: Request, exc: ScheduleEngineError
    ):
        logger.info(
            "Request rejected",
            path=request.url.path,
            return_code=exc.return_code.value,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        fields = sorted(
            {".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()}
        )
        logger.warning("Malformed request body", path=request.url.path, fields=fields)
        return JSONResponse(
            status_code=400,
            content={
                "return_code": ReturnCode.MISSING_FIELDS.value,
                "message": f"Missing or malformed fields: {', '.join(fields)}",
            },
        )

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "return_code": ReturnCode.SERVER_ERROR.value,
                "message": "An error occurred while processing your request",
            },
        )

    @application.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": settings.VERSION}

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return application


app = create_app()
