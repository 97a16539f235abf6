"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fastapi import WebSocket

from live_draft.config import settings
from live_draft.api.routes.live_draft import router as live_draft_router
from live_draft.api.websockets.live_draft_ws import live_draft_websocket
from live_draft.repositories.live_draft_repository import LiveDraftRepository
from live_draft.services.event_hub import EventHub
from live_draft.services.live_draft_service import LiveDraftService
from live_draft.services.turn_timer import TurnTimer


# Database path - ":memory:" or a DuckDB file, relative paths from the repo root
def get_database_path() -> str:
    """Get the database path from settings."""
    if settings.database_path == ":memory:":
        return settings.database_path
    db_path = Path(settings.database_path)
    if db_path.is_absolute():
        return str(db_path)
    repo_root = Path(__file__).parent.parent.parent.parent
    return str(repo_root / db_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup: tests may pre-populate app.state
    if not hasattr(app.state, "repository"):
        app.state.repository = LiveDraftRepository(get_database_path())
    if not hasattr(app.state, "event_hub"):
        app.state.event_hub = EventHub()
    if not hasattr(app.state, "live_draft_service"):
        app.state.live_draft_service = LiveDraftService(
            app.state.repository, app.state.event_hub, settings
        )
    timer: Optional[TurnTimer] = None
    if settings.enable_turn_timer:
        timer = TurnTimer(
            app.state.live_draft_service,
            tick_seconds=settings.timer_tick_seconds,
            grace_seconds=settings.timeout_grace_seconds,
        )
        timer.start()
        app.state.turn_timer = timer
    yield
    # Shutdown
    if timer is not None:
        await timer.stop()


app = FastAPI(
    title="Live Draft",
    description="Multi-game League of Legends pick/ban drafting between two captains",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "live-draft"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Live Draft API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# Register routers
app.include_router(live_draft_router)


# WebSocket endpoint for session events
@app.websocket("/ws/live-draft/{session_id}")
async def websocket_live_draft(
    websocket: WebSocket,
    session_id: str,
    participant_id: Optional[str] = None,
):
    """WebSocket endpoint for live draft events."""
    await live_draft_websocket(
        websocket,
        session_id,
        app.state.live_draft_service,
        participant_id=participant_id,
    )
