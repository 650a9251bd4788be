"""
futility-core Service
=====================

FastAPI entry point hosting one GameSession.

An asyncio frame loop calls `session.update()` at `loop.frame_rate` Hz.
HTTP handlers and the loop share one event loop, so the session is only
ever touched from a single thread.

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe (is process alive?)
    GET  /ready             - Readiness probe (frame loop running?)
    GET  /telemetry         - Full telemetry snapshot
    GET  /metrics           - Detailed subsystem metrics
    GET  /results           - Summary of the last finished run
    POST /flow/transition   - Request a phase transition (409 if illegal)
    POST /flow/reset        - Force back to Menu
    POST /events/blocked    - Report blocked particles
    POST /events/escaped    - Report escaped particles
    WS   /ws/telemetry      - Telemetry push stream
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from futility_core import __version__
from futility_core.config import load_config, setup_logging
from futility_core.models.input import ParticleEvent, TransitionRequest
from futility_core.session import GameSession


logger = logging.getLogger(__name__)

settings = load_config(os.environ.get("FUTILITY_CONFIG"))
setup_logging(settings)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False

_session: Optional[GameSession] = None
_loop_task: Optional[asyncio.Task] = None

_startup_time: float = 0.0
_frame_count: int = 0
_frame_error_count: int = 0
_is_ready: bool = False


# =============================================================================
# Getters
# =============================================================================

def get_session() -> Optional[GameSession]:
    return _session

def is_ready() -> bool:
    return _is_ready


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Frame Loop
# =============================================================================

async def run_frame_loop() -> None:
    """Drive the session at the configured frame rate."""
    global _frame_count, _frame_error_count, _is_ready

    if _session is None:
        logger.error("Frame loop started without a session")
        return

    frame_interval = 1.0 / settings.loop.frame_rate
    logger.info(f"Frame loop started at {settings.loop.frame_rate:.0f} Hz")
    _is_ready = True

    while not _shutdown_flag:
        try:
            _session.update()
            _frame_count += 1
            await asyncio.sleep(frame_interval)
        except asyncio.CancelledError:
            logger.info("Frame loop cancelled")
            break
        except Exception as e:
            _frame_error_count += 1
            logger.error(f"Frame error: {e}")
            await asyncio.sleep(0.1)

    _is_ready = False
    logger.info("Frame loop stopped")


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _session, _loop_task, _startup_time, _shutdown_flag, _frame_count

    try:
        signal.signal(signal.SIGTERM, _handle_sigterm)
    except ValueError:
        # Not the main thread (e.g. an in-process test client)
        logger.debug("SIGTERM handler not installed outside the main thread")

    # Startup
    _startup_time = time.time()
    _shutdown_flag = False
    _frame_count = 0
    logger.info(f"Starting futility-core {__version__}")
    logger.info(f"Configured port: {settings.server.port}")

    _session = GameSession(settings)
    _loop_task = asyncio.create_task(run_frame_loop(), name="frame_loop")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _loop_task:
        _loop_task.cancel()
        try:
            await _loop_task
        except asyncio.CancelledError:
            pass

    if _session is not None and _session.flow.is_in_gameplay():
        _session.end_game()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="futility-core",
    description="Lifecycle, emission and difficulty core of an unwinnable survival game",
    version=__version__,
    lifespan=lifespan,
)


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Session not initialized"}, status_code=503)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    session = get_session()
    return JSONResponse({
        "service": "futility-core",
        "version": __version__,
        "status": "running",
        "phase": session.phase.name if session else None,
        "frame_rate": settings.loop.frame_rate,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the frame loop driving a session?

    Returns 503 if not ready.
    """
    session_ready = _session is not None
    if session_ready and _is_ready:
        return JSONResponse({
            "status": "ready",
            "phase": _session.phase.name,
            "frames": _frame_count,
        })
    return JSONResponse(
        {
            "status": "not_ready",
            "session_initialized": session_ready,
            "loop_running": _is_ready,
        },
        status_code=503,
    )


@app.get("/telemetry")
async def telemetry() -> JSONResponse:
    """Full telemetry snapshot."""
    session = get_session()
    if session is None:
        return _not_ready()
    return JSONResponse(session.telemetry().model_dump(mode="json"))


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    session_metrics = session.get_metrics() if session else {}
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "frames": _frame_count,
        "frame_errors": _frame_error_count,
        **session_metrics,
    })


@app.get("/results")
async def results() -> JSONResponse:
    """Summary of the last finished run."""
    session = get_session()
    if session is None:
        return _not_ready()
    if session.summary is None:
        return JSONResponse({"error": "No finished run yet"}, status_code=404)
    return JSONResponse(session.summary.model_dump(mode="json"))


@app.post("/flow/transition")
async def flow_transition(request: TransitionRequest) -> JSONResponse:
    """Request a validated phase transition."""
    session = get_session()
    if session is None:
        return _not_ready()

    result = session.request_transition(request.target)
    payload = {
        **result.to_dict(),
        "phase": session.phase.name,
        "legal_targets": list(session.legal_targets()),
    }
    return JSONResponse(payload, status_code=200 if result else 409)


@app.post("/flow/reset")
async def flow_reset() -> JSONResponse:
    """Force the flow back to Menu."""
    session = get_session()
    if session is None:
        return _not_ready()

    result = session.reset()
    return JSONResponse({
        "forced": result is not None and result.success,
        "phase": session.phase.name,
    })


@app.post("/events/blocked")
async def events_blocked(event: ParticleEvent) -> JSONResponse:
    """Report particles blocked by the player."""
    session = get_session()
    if session is None:
        return _not_ready()

    session.on_particle_blocked(event.count)
    return JSONResponse({
        "particles_blocked": session.stats.particles_blocked,
        "pressure_percentage": round(session.sources.pressure_percentage, 4),
    })


@app.post("/events/escaped")
async def events_escaped(event: ParticleEvent) -> JSONResponse:
    """Report particles that escaped the player."""
    session = get_session()
    if session is None:
        return _not_ready()

    session.on_particle_escaped(event.count)
    return JSONResponse({
        "particles_escaped": session.stats.particles_escaped,
        "max_escaped": session.failure_limit(),
    })


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/telemetry")
async def telemetry_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time telemetry."""
    await websocket.accept()
    logger.info("Client connected to /ws/telemetry")

    try:
        while not _shutdown_flag:
            session = get_session()
            if session:
                await websocket.send_json(session.telemetry().model_dump(mode="json"))
            try:
                # Inbound messages are ignored; a disconnect raises and ends the stream
                await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=settings.loop.telemetry_push_interval,
                )
            except asyncio.TimeoutError:
                continue

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/telemetry")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "futility_core.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
