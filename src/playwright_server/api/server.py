# src/playwright_server/api/server.py
"""
HTTP API for the session server.

Routes:
- GET    /health
- POST   /sessions                  create a session
- GET    /sessions                  list live sessions
- DELETE /sessions/{id}             terminate a session
- POST   /sessions/{id}/command     run one command (object) or a sequence (array)
- GET    /recordings/...            finalized recordings

Errors leave as ``{"type", "message", "details"}`` with the status code of
their kind.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import uvicorn
from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .schemas import (
    CreateSessionRequest,
    CreateSessionResponse,
    HealthResponse,
    SessionListResponse,
    SessionSummary,
    TerminateResponse,
    parse_command_payload,
)
from ..config.settings import Settings, get_settings
from ..core.browser_manager import BrowserAutomation
from ..core.commands import CommandDispatcher
from ..core.exceptions import AutomationException, ErrorKind
from ..core.executor import SequenceExecutor
from ..core.logger import LoggingContext, get_logger, setup_logging_from_settings
from ..core.proxy import load_global_proxy, parse_proxy_request
from ..core.recording import RecordingTracker, ensure_recordings_directory
from ..core.scheduling import Clock, TimerScheduler
from ..core.session_registry import SessionRegistry
from ..models.base import to_iso

logger = get_logger("api")

router = APIRouter()

CORRELATION_HEADER = "X-Correlation-ID"


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_executor(request: Request) -> SequenceExecutor:
    return request.app.state.executor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/health")
async def health(registry: SessionRegistry = Depends(get_registry)):
    return HealthResponse(active_sessions=registry.active_count).to_wire()


@router.post("/sessions", status_code=201)
async def create_session(
        body: CreateSessionRequest,
        registry: SessionRegistry = Depends(get_registry),
        settings: Settings = Depends(get_app_settings)
):
    ttl_ms = registry.validate_ttl(body.ttl)
    proxy = parse_proxy_request(body.proxy) if body.proxy is not None else None

    session = await registry.create(
        ttl_ms,
        recording=body.recording,
        video_size=body.video_size,
        proxy=proxy
    )

    base_url = settings.public_base_url
    response = CreateSessionResponse(
        session_id=session.id,
        session_url=f"{base_url}/sessions/{session.id}/command",
        stop_url=f"{base_url}/sessions/{session.id}",
        created_at=to_iso(session.created_at),
        expires_at=to_iso(session.expires_at),
        playback_url=session.recording.playback_url if session.recording else None
    )
    return JSONResponse(status_code=201, content=response.to_wire())


@router.get("/sessions")
async def list_sessions(registry: SessionRegistry = Depends(get_registry)):
    now = registry.clock.now()
    summaries = [
        SessionSummary(
            session_id=session.id,
            created_at=to_iso(session.created_at),
            expires_at=to_iso(session.expires_at),
            ttl=session.ttl_ms,
            remaining_ttl=session.remaining_ms(now)
        )
        for session in registry.list()
    ]
    return SessionListResponse(sessions=summaries).to_wire()


@router.delete("/sessions/{session_id}")
async def terminate_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.get(session_id)
    await registry.terminate(session_id)
    return TerminateResponse().to_wire()


@router.post("/sessions/{session_id}/command")
async def execute_command(
        session_id: str,
        request: Request,
        payload: Any = Body(...),
        executor: SequenceExecutor = Depends(get_executor)
):
    is_sequence, commands = parse_command_payload(payload)

    with LoggingContext(session_id=session_id):
        if is_sequence:
            result = await executor.execute_many(
                session_id,
                commands,
                metadata={"user_agent": request.headers.get("user-agent")}
            )
            return JSONResponse(status_code=207, content=result.to_wire())

        start = time.perf_counter()
        value = await executor.execute_one(session_id, commands[0])
        duration_ms = round((time.perf_counter() - start) * 1000, 3)

    return {
        "result": jsonable_encoder(value),
        "executedAt": to_iso(executor.registry.clock.now()),
        "durationMs": duration_ms,
    }


async def automation_exception_handler(request: Request, exc: AutomationException) -> JSONResponse:
    logger.log(
        exc.log_level.to_numeric(),
        "Request failed",
        path=request.url.path,
        error=exc.to_dict()
    )
    return JSONResponse(status_code=exc.kind.http_status(), content=exc.to_response())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "type": ErrorKind.VALIDATION.value,
            "message": "Invalid request",
            "details": details,
        }
    )


def create_app(
        settings: Optional[Settings] = None,
        automation: Optional[BrowserAutomation] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TimerScheduler] = None,
        environ: Optional[Mapping[str, str]] = None
) -> FastAPI:
    """
    Build the application.

    Collaborators are injectable so tests can run the full HTTP stack
    against fake browsers and a virtual clock.

    Startup fails if the global proxy configured in the environment is
    invalid.
    """
    settings = settings or get_settings()
    clock = clock or Clock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging_from_settings(settings)
        logger.debug("Configuration loaded", config=settings.model_dump_safe())

        global_proxy = load_global_proxy(environ)
        ensure_recordings_directory(settings.recording.directory)

        browser = automation or BrowserAutomation(settings)
        await browser.start()

        tracker = RecordingTracker.from_settings(settings, clock)
        registry = SessionRegistry(
            browser,
            tracker,
            settings=settings,
            scheduler=scheduler,
            clock=clock,
            global_proxy=global_proxy
        )

        app.state.settings = settings
        app.state.tracker = tracker
        app.state.registry = registry
        app.state.executor = SequenceExecutor(registry, CommandDispatcher())

        tracker.start()
        logger.info(
            "Server started",
            port=settings.port,
            max_sessions=settings.sessions.max_concurrent,
            global_proxy=global_proxy is not None
        )
        try:
            yield
        finally:
            await registry.terminate_all()
            await tracker.stop()
            await browser.stop()
            logger.info("Server stopped")

    app = FastAPI(
        title="Playwright Server",
        version=settings.app_version,
        lifespan=lifespan
    )

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        with LoggingContext(correlation_id=request.headers.get(CORRELATION_HEADER)) as context:
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = context.correlation_id
        return response

    app.add_exception_handler(AutomationException, automation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    app.mount(
        "/recordings",
        StaticFiles(directory=str(settings.recording.directory), check_dir=False),
        name="recordings"
    )
    return app


def main() -> None:
    """Console entry point: ``playwright-server``."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.logging.level.lower()
    )


if __name__ == "__main__":
    main()
