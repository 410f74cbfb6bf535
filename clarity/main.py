"""Application factory for the Clarity API.

This module builds the FastAPI application: it configures logging, CORS and request
logging, maps errors to JSON responses, creates the database schema at startup, and
exposes the Scalar API reference endpoint for interactive OpenAPI documentation.
"""

import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from clarity import __version__
from clarity.api.routes import auth_router, router, transactions_router
from clarity.core.db import create_db_engine, create_session_factory, init_db
from clarity.core.errors import ClarityError
from clarity.core.settings import Settings
from clarity.core.utils import get_logger, setup_logging

logger = get_logger("clarity.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the engine and tables at startup and dispose of the engine at shutdown."""
    settings: Settings = app.state.settings
    engine = create_db_engine(settings.database_url)
    try:
        init_db(engine)
    except SQLAlchemyError:
        logger.exception("Failed to create database tables")
        raise
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info("Database ready")
    yield
    engine.dispose()


async def clarity_error_handler(_: Request, exc: ClarityError) -> JSONResponse:
    """Render a ClarityError as its status and JSON body."""
    if exc.status_code >= 500:  # noqa: PLR2004
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors with a ``message`` body."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)  # noqa: PLR2004
    return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400s."""
    errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
    """Hide unexpected failures behind a generic 500."""
    logger.exception("Unhandled error", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Server error"})


async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Log method, path, status and duration of each request."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f} ms")
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; settings are read from the environment when not given."""
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        title="Clarity API",
        description="""
    The Clarity API records personal income and expense transactions for authenticated users.

    **Endpoints:**
    - `POST /api/auth/register`, `POST /api/auth/login`: create an account or log in; returns a bearer token.
    - `GET /api/transactions`: list transactions, filtered by `type`, `category`, `startDate`, `endDate`.
    - `POST /api/transactions`: create a transaction from form fields.
    - `POST /api/transactions/ai`: create a transaction from a free-text note using an LLM.
    - `PUT /api/transactions/{id}`, `DELETE /api/transactions/{id}`: update or delete a transaction.
    - `GET /api/transactions/summary`, `GET /api/transactions/export`: totals and CSV export.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
        version=__version__,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(ClarityError, clarity_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(transactions_router, prefix=settings.api_prefix)

    @app.get("/scalar", include_in_schema=False)
    async def scalar_docs() -> HTMLResponse:
        """Return Scalar API reference."""
        return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)

    return app
