import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from lessontrack.application.config import AppConfig, resolve_config
from lessontrack.application.factory import TrackingContext, build_tracking_context
from lessontrack.application.tracking.statistics import summarize
from lessontrack.consts import VERSION
from lessontrack.domain.errors import ContentFetchError
from lessontrack.domain.models import LastReadLesson, ProgressMetrics, TrackingEvent

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lessontrack.server")

ContextFactory = Callable[[], TrackingContext]


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class OpenLessonRequest(BaseModel):
    # If content is None, it is fetched through the configured provider.
    content: str | None = None
    title: str | None = None


class ScrollRequest(BaseModel):
    position: float
    max_scrollable: float


class VisibilityRequest(BaseModel):
    visible: bool


class SnapshotResponse(BaseModel):
    state: str
    lesson_key: str | None
    metrics: ProgressMetrics | None


class StatsResponse(BaseModel):
    lessons_viewed: int
    lessons_completed: int
    total_time_spent_ms: int
    average_reading_speed_wpm: float
    average_completion: float
    completion_rate: float
    current_streak: int
    longest_streak: int


def create_app(
    config: AppConfig | None = None,
    context_factory: ContextFactory | None = None,
) -> FastAPI:
    """
    Build the HTTP surface around one tracking context.

    The context is created lazily on first use, inside the running loop,
    and torn down (final flush included) when the app shuts down.
    """

    def default_factory() -> TrackingContext:
        return build_tracking_context(config or resolve_config())

    factory = context_factory or default_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"lessontrack server v{VERSION} starting up...")
        yield
        # Shutdown
        ctx: TrackingContext | None = getattr(app.state, "tracking", None)
        if ctx is not None:
            await ctx.aclose()
            app.state.tracking = None
        logger.info("lessontrack server shutting down...")

    app = FastAPI(
        title="lessontrack",
        description="Reading-progress tracking for lesson readers.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.tracking = None
    start_time = time.time()

    async def get_context(request: Request) -> TrackingContext:
        ctx = request.app.state.tracking
        if ctx is None:
            ctx = factory()
            request.app.state.tracking = ctx
        return ctx

    def snapshot(ctx: TrackingContext) -> SnapshotResponse:
        tracker = ctx.tracker
        return SnapshotResponse(
            state=tracker.state.value, lesson_key=tracker.lesson_key, metrics=tracker.metrics
        )

    def require_open(ctx: TrackingContext, lesson_key: str) -> None:
        if ctx.tracker.lesson_key != lesson_key:
            raise HTTPException(status_code=409, detail=f"Lesson '{lesson_key}' is not open")

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Simple health check to verify server is reachable.
        """
        return HealthResponse(
            status="ok", version=VERSION, uptime_seconds=time.time() - start_time
        )

    @app.get("/version")
    async def get_version():
        return {"version": VERSION}

    @app.post("/lessons/{lesson_key:path}/open", response_model=SnapshotResponse)
    async def open_lesson(
        lesson_key: str,
        req: OpenLessonRequest,
        ctx: TrackingContext = Depends(get_context),
    ):
        content, title = req.content, req.title
        if content is None:
            if ctx.lessons is None:
                raise HTTPException(status_code=400, detail="No content given and no provider")
            try:
                lesson = await ctx.lessons.fetch_lesson(lesson_key)
            except ContentFetchError as e:
                logger.error(f"Open failed: {e}")
                status = 502 if e.retryable else 404
                raise HTTPException(status_code=status, detail=str(e)) from e
            content, title = lesson.content, title or lesson.title

        ctx.tracker.open_lesson(lesson_key, content, title=title)
        return snapshot(ctx)

    @app.post("/lessons/{lesson_key:path}/scroll", response_model=SnapshotResponse)
    async def scroll(
        lesson_key: str,
        req: ScrollRequest,
        ctx: TrackingContext = Depends(get_context),
    ):
        require_open(ctx, lesson_key)
        ctx.tracker.handle_scroll(req.position, req.max_scrollable)
        ctx.positions.save_position(lesson_key, req.position)
        return snapshot(ctx)

    @app.post("/lessons/{lesson_key:path}/complete", response_model=SnapshotResponse)
    async def complete(lesson_key: str, ctx: TrackingContext = Depends(get_context)):
        require_open(ctx, lesson_key)
        ctx.tracker.mark_as_complete()
        return snapshot(ctx)

    @app.post("/visibility", response_model=SnapshotResponse)
    async def visibility(req: VisibilityRequest, ctx: TrackingContext = Depends(get_context)):
        ctx.signal.publish(req.visible)
        return snapshot(ctx)

    @app.post("/session/end", response_model=SnapshotResponse)
    async def end_session(ctx: TrackingContext = Depends(get_context)):
        ctx.tracker.end_session()
        return snapshot(ctx)

    @app.get("/metrics", response_model=SnapshotResponse)
    async def metrics(ctx: TrackingContext = Depends(get_context)):
        return snapshot(ctx)

    @app.get("/progress/{lesson_key:path}", response_model=ProgressMetrics)
    async def get_progress(lesson_key: str, ctx: TrackingContext = Depends(get_context)):
        progress = ctx.tracker.get_progress(lesson_key)
        if progress is None:
            raise HTTPException(status_code=404, detail=f"No progress for '{lesson_key}'")
        return progress

    @app.get("/positions/{lesson_key:path}")
    async def get_position(lesson_key: str, ctx: TrackingContext = Depends(get_context)):
        return {"lesson_key": lesson_key, "position": ctx.positions.get_position(lesson_key)}

    @app.get("/last-read", response_model=LastReadLesson | None)
    async def last_read(ctx: TrackingContext = Depends(get_context)):
        return ctx.positions.last_read()

    @app.get("/stats", response_model=StatsResponse)
    async def stats(ctx: TrackingContext = Depends(get_context)):
        summary = summarize(ctx.gateway.list_metrics().values(), ctx.event_log.entries())
        return StatsResponse(**asdict(summary))

    @app.get("/events", response_model=list[TrackingEvent])
    async def events(
        lesson: str | None = None,
        limit: int = 50,
        ctx: TrackingContext = Depends(get_context),
    ) -> Any:
        entries = ctx.event_log.for_lesson(lesson) if lesson else ctx.event_log.entries()
        return entries[-limit:] if limit > 0 else []

    return app


app = create_app()
