"""FastAPI application for the powerpro JSON API."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from .. import __version__
from ..db.engine import get_db_path, init_db, seed_rpe_chart
from .routers import progressions, state, workouts


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Database to serve. Uses the configured default if not provided.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler - runs on startup and shutdown."""
        await init_db(app.state.db_path)
        await seed_rpe_chart(app.state.db_path)
        yield

    app = FastAPI(
        title="powerpro",
        description="Strength program prescription resolution and progression engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.db_path = db_path or get_db_path()

    app.include_router(workouts.router)
    app.include_router(state.router)
    app.include_router(progressions.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
