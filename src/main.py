"""School fee engine FastAPI application."""
import logging
import os
from contextlib import asynccontextmanager

# macOS: so WeasyPrint finds pango/glib when generating PDFs (only if not already set)
if os.name == "posix" and os.environ.get("DYLD_LIBRARY_PATH") in (None, ""):
    _brew_lib = "/opt/homebrew/opt/glib/lib:/opt/homebrew/opt/pango/lib:/opt/homebrew/lib"
    if os.path.exists("/opt/homebrew/opt/glib/lib"):
        os.environ["DYLD_LIBRARY_PATH"] = _brew_lib

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from src.modules.payments.router import router as payments_router
from src.modules.reports.router import router as reports_router
from src.modules.fees.router import router as fees_router
from src.modules.students.router import router as students_router
from src.core.config import settings
from src.core.exceptions import AppException
from src.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    sqlalchemy_db_error_handler,
    validation_exception_handler,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Fee engine starting (env=%s)", settings.app_env)
    yield
    # Shutdown


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="School Fee Engine",
        description="Fee structures, assignment, payments and financial documents",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_db_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Routers
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(fees_router, prefix="/api/v1")
    app.include_router(students_router, prefix="/api/v1")

    return app


app = create_app()
