"""FastAPI application for the daily-trainer JSON API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..config import EngineConfig, load_config
from ..core.countdown import ResetCountdown
from ..db.engine import init_db, seed_catalog
from ..errors import (
    ConcurrentUpdate,
    Forbidden,
    InvalidTransition,
    NoCandidateExercises,
    NotFound,
    PlanEngineError,
    PlanHasProgress,
    TransientGatewayError,
)
from ..gateways import SystemClock
from ..services.orchestrator import PlanOrchestrator
from .routers import plans

ERROR_STATUS = {
    PlanHasProgress: 409,
    NoCandidateExercises: 422,
    NotFound: 404,
    Forbidden: 403,
    InvalidTransition: 409,
    ConcurrentUpdate: 409,
    TransientGatewayError: 503,
}


def _error_status(error: PlanEngineError) -> int:
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


async def plan_engine_error_handler(request: Request, exc: PlanEngineError) -> JSONResponse:
    """Render plan engine errors as JSON."""
    status_code = _error_status(exc)
    if status_code >= 500:
        logger.bind(path=request.url.path).warning(f"Request failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(config: EngineConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler - runs on startup and shutdown."""
        # Startup: initialize database and catalog
        if not config.db_path.exists():
            config.data_dir.mkdir(parents=True, exist_ok=True)
            await init_db(config.db_path)
            await seed_catalog(config.db_path)
        yield

    app = FastAPI(
        title="daily-trainer",
        description="Daily football training plans",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.orchestrator = PlanOrchestrator.from_config(config)

    app.add_exception_handler(PlanEngineError, plan_engine_error_handler)

    # Include routers
    app.include_router(plans.router)

    @app.get("/countdown")
    async def countdown():
        """Time left until the next daily reset."""
        clock = SystemClock(config.timezone)
        return ResetCountdown(offset_hours=config.day_offset_hours, clock=clock).snapshot.to_dict()

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
