"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from steadyface.stabilizer.detector import DetectorGateway, FrameSource, Renderer

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from steadyface.api.routes import router
from steadyface.config import get_settings
from steadyface.stabilizer.session import DetectionSession

logger = logging.getLogger(__name__)


def _make_lifespan(
    detector: DetectorGateway | None,
    frame_source: FrameSource | None,
    renderer: Renderer | None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan: start the detection loop, stop it on shutdown."""
        settings = get_settings()
        app.state.settings = settings

        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )

        logger.info(
            "Starting SteadyFace (detection_interval_ms=%s, smoothing_factor=%s, history=%s every %s frames)",
            settings.detection_interval_ms,
            settings.smoothing_factor,
            settings.history_capacity,
            settings.history_sample_every,
        )

        session: DetectionSession | None = None
        if detector is not None and frame_source is not None:
            session = DetectionSession(detector, frame_source, settings, renderer=renderer)
            session.start()
        else:
            logger.warning("No detector or frame source supplied; API will report 503")
        app.state.session = session

        logger.info("SteadyFace ready")
        yield

        logger.info("Shutting down SteadyFace")
        if session is not None:
            await session.shutdown()
        close_detector = getattr(detector, "shutdown", None)
        if callable(close_detector):
            close_detector()
        logger.info("SteadyFace shutdown complete")

    return lifespan


def create_app(
    detector: DetectorGateway | None = None,
    frame_source: FrameSource | None = None,
    renderer: Renderer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The detection loop only runs when both a detector and a frame source are
    supplied. A detector exposing ``shutdown()`` (such as
    ``ExecutorDetectorGateway``) is shut down with the app.
    """
    application = FastAPI(
        title="SteadyFace",
        description="Temporal stabilization and consensus for live face detections",
        version="0.1.0",
        lifespan=_make_lifespan(detector, frame_source, renderer),
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()
