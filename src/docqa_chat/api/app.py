"""
FastAPI Application Module

HTTP surface for the conversation shell: one text input with a submit
control, backed by a single conversation session per application instance.

Key Features:
- Submit/append protocol over the session core
- Optional asynchronous backend dispatch and history write-through
- Bridge connectivity smoke test (greet)
- Structured logging, Prometheus metrics, OpenTelemetry tracing
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel
from structlog import get_logger

from ..config import Settings, configure_logging
from ..domain.models import Message, SessionState, SubmitResult
from ..repositories.base import HistoryRepository
from ..services.backend import Backend
from ..services.bridge import CommandBridge, create_bridge, request_greeting
from ..services.runtime import SessionRuntime

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

SUBMISSIONS = Counter(
    "submissions_total", "Submitted drafts by outcome", ["outcome"], registry=CUSTOM_REGISTRY
)
REQUESTS = Counter("requests_total", "Total requests", registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total request errors", registry=CUSTOM_REGISTRY)

logger = get_logger()


class MessageCreate(BaseModel):
    """Defines the structure for message submissions"""
    content: str


class GreetRequest(BaseModel):
    """Defines the structure for greet requests"""
    name: str


class GreetResponse(BaseModel):
    greeting: str


class SessionInfo(BaseModel):
    """Summary of the hosted session"""
    id: str
    state: SessionState
    pending: int
    message_count: int


def get_runtime(request: Request) -> SessionRuntime:
    """Returns the session runtime owned by this app"""
    return request.app.state.runtime


def get_bridge(request: Request) -> CommandBridge:
    """Returns the command bridge"""
    return request.app.state.bridge


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[Backend] = None,
    repository: Optional[HistoryRepository] = None,
    bridge: Optional[CommandBridge] = None,
) -> FastAPI:
    """Builds an app hosting one conversation session"""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handles app startup/shutdown and session teardown"""
        configure_logging(settings.log_level)
        await app.state.runtime.open()
        logger.info("application_startup_complete")

        yield

        await app.state.runtime.close()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title=settings.app_name,
        description="Conversation shell for a local document assistant",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runtime = SessionRuntime(
        backend=backend,
        repository=repository,
        reply_timeout=settings.reply_timeout,
    )
    app.state.bridge = bridge or create_bridge(available=settings.bridge_available)

    # Enable cross-origin requests from the desktop webview
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Set up request tracing
    FastAPIInstrumentor.instrument_app(app)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Tracks requests"""
        REQUESTS.inc()
        logger.info("request_started", path=request.url.path)
        try:
            return await call_next(request)
        except Exception as e:
            ERRORS.inc()
            logger.error("request_failed", path=request.url.path, error=str(e))
            raise

    @app.get("/session", response_model=SessionInfo)
    async def get_session_info(runtime: SessionRuntime = Depends(get_runtime)) -> SessionInfo:
        """Describes the hosted session"""
        session = await runtime.open()
        return SessionInfo(
            id=str(session.id),
            state=session.state,
            pending=len(session.pending),
            message_count=len(session),
        )

    @app.get("/messages", response_model=List[Message])
    async def list_messages(runtime: SessionRuntime = Depends(get_runtime)) -> List[Message]:
        """Returns a snapshot of the conversation log"""
        session = await runtime.open()
        return list(session.messages)

    @app.post("/messages", response_model=SubmitResult)
    async def submit_message(
        message: MessageCreate,
        wait: bool = False,
        runtime: SessionRuntime = Depends(get_runtime),
    ) -> SubmitResult:
        """
        Submits a draft to the session.
        Blank drafts come back as rejected_empty; with wait, responds once
        the backend reply has been appended.
        """
        try:
            session = await runtime.open()
            result = session.submit(message.content)
            SUBMISSIONS.labels(outcome=result.outcome.value).inc()
            if wait and result.accepted:
                await runtime.wait_idle()
            return result
        except Exception as e:
            logger.error("submit_message_error", error=str(e))
            raise HTTPException(status_code=500, detail="Failed to submit message")

    @app.post("/greet", response_model=GreetResponse)
    async def greet(
        request: GreetRequest,
        bridge: CommandBridge = Depends(get_bridge),
    ) -> GreetResponse:
        """Bridge connectivity smoke test"""
        return GreetResponse(greeting=await request_greeting(bridge, request.name))

    @app.get("/metrics")
    async def metrics():
        """Provides Prometheus metrics for system monitoring"""
        return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")

    return app


app = create_app()
