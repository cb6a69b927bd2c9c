"""FastAPI application factory.

App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database engine).
Middleware, CORS, the ServiceError handler and routers are all
registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from volca import __version__
from volca.api import api_router
from volca.config import settings
from volca.errors import ServiceError
from volca.services.communications import CommunicationsService

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "volca.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("volca.shutdown")

    from volca.db.engine import engine
    await engine.dispose()


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError. The debug detail is logged, never returned."""
    logger.warning(
        "service_error",
        name=exc.name.value,
        status=exc.status_code,
        message=exc.message,
        debug=exc.debug,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Volca API",
        description="Authentication, sessions and project authorization",
        version=__version__,
        lifespan=lifespan,
    )

    # Outbound mail seam — replace on app.state to plug in a real sender.
    app.state.communications = CommunicationsService()

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler

    from volca.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(ServiceError, service_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: volca.main:app)
app = create_app()
