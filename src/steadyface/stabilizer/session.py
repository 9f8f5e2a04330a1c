"""Detection scheduling loop.

Architecture:
    tick loop -> (rate limit + single flight) -> DetectorGateway (background task)
              -> scale -> smooth -> score -> publish -> history -> consensus

Every tick renders the latest stabilized state; detection runs at most once per
``detection_interval`` and never more than one call at a time. The tick never
awaits the detector, so a slow or hung call only holds the in-flight flag.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from steadyface.stabilizer.aggregation import compute_consensus
from steadyface.stabilizer.detector import scale_detection, to_detection_result
from steadyface.stabilizer.history import HistoryBuffer
from steadyface.stabilizer.scoring import score_landmarks
from steadyface.stabilizer.smoothing import smooth_detections

if TYPE_CHECKING:
    from collections.abc import Callable

    from steadyface.config import Settings
    from steadyface.stabilizer.detector import (
        DetectorGateway,
        FrameSource,
        RawDetection,
        Renderer,
        SummaryListener,
    )
    from steadyface.stabilizer.types import ConsensusSummary, DetectionResult

logger = logging.getLogger(__name__)


class DetectionSession:
    """Owns the loop state for one video stream.

    All mutable state (in-flight flag, last start time, stabilized detections,
    history and consensus) lives on the instance, so sessions are independent
    and ``reset`` is local.
    """

    def __init__(
        self,
        detector: DetectorGateway,
        frame_source: FrameSource,
        settings: Settings,
        *,
        renderer: Renderer | None = None,
        on_summary: SummaryListener | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._detector = detector
        self._frame_source = frame_source
        self._renderer = renderer
        self._on_summary = on_summary
        self._clock = clock

        self._detection_interval = settings.detection_interval_ms / 1000.0
        self._tick_interval = settings.tick_interval_ms / 1000.0
        self._smoothing_factor = settings.smoothing_factor

        self._history = HistoryBuffer(
            capacity=settings.history_capacity,
            sample_every=settings.history_sample_every,
        )
        self._stabilized: tuple[DetectionResult, ...] = ()
        self._consensus: ConsensusSummary | None = None

        self._in_flight: bool = False
        self._last_started: float | None = None
        self._closed: bool = False
        self._loop_task: asyncio.Task[None] | None = None
        self._detection_task: asyncio.Task[None] | None = None

        self._detections_started: int = 0
        self._detection_failures: int = 0

    # -- Lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Start the repeating tick loop on the running event loop."""
        if self._closed:
            raise RuntimeError("Session has been shut down")
        if self._loop_task is not None:
            raise RuntimeError("Session is already running")
        self._loop_task = asyncio.get_running_loop().create_task(self._run_loop(), name="steadyface-tick")
        logger.info(
            "Detection loop started (detection_interval=%.3fs, tick_interval=%.3fs)",
            self._detection_interval,
            self._tick_interval,
        )

    async def shutdown(self) -> None:
        """Stop ticking immediately.

        A detection already in flight may still finish, but its result is
        discarded.
        """
        if self._closed:
            return
        self._closed = True
        task, self._loop_task = self._loop_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Detection loop stopped")

    async def drain(self) -> None:
        """Wait for the in-flight detection, if any, to complete."""
        task = self._detection_task
        if task is not None:
            await task

    def reset(self) -> None:
        """Clear history, consensus and the frame counter."""
        self._history.clear()
        changed = self._consensus is not None
        self._consensus = None
        if changed:
            self._notify_summary()
        logger.info("Session statistics reset")

    # -- Loop ---------------------------------------------------------------

    async def _run_loop(self) -> None:
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Tick failed; continuing")
            await asyncio.sleep(self._tick_interval)

    def tick(self) -> None:
        """Run one loop iteration: start a detection if due, then render."""
        if self._closed:
            return
        if self._detection_due():
            self._start_detection()
        self._render()

    def _detection_due(self) -> bool:
        if self._in_flight:
            return False
        if self._last_started is not None and self._clock() - self._last_started < self._detection_interval:
            return False
        try:
            return self._frame_source.is_ready()
        except Exception:
            logger.exception("Frame readiness check failed; treating frame as not ready")
            return False

    def _start_detection(self) -> None:
        try:
            frame = self._frame_source.read()
            frame_size = self._frame_source.frame_size
            display_size = self._frame_source.display_size
        except Exception:
            logger.exception("Reading frame failed; skipping detection this tick")
            return

        self._in_flight = True
        self._last_started = self._clock()
        self._detections_started += 1
        self._detection_task = asyncio.get_running_loop().create_task(
            self._run_detection(frame, frame_size, display_size),
            name="steadyface-detect",
        )

    async def _run_detection(
        self,
        frame: Any,
        frame_size: tuple[float, float],
        display_size: tuple[float, float],
    ) -> None:
        try:
            raw = await self._detector.detect(frame)
        except Exception:
            self._detection_failures += 1
            logger.exception("Detection failed; keeping previous state")
            return
        finally:
            self._in_flight = False
            self._detection_task = None

        if self._closed:
            logger.debug("Discarding detection result after shutdown")
            return
        try:
            self._apply(raw, frame_size, display_size)
        except Exception:
            self._detection_failures += 1
            logger.exception("Malformed detection result; keeping previous state")

    def _apply(
        self,
        raw: list[RawDetection],
        frame_size: tuple[float, float],
        display_size: tuple[float, float],
    ) -> None:
        current = [to_detection_result(scale_detection(r, frame_size, display_size)) for r in raw]
        smoothed = smooth_detections(self._stabilized, current, self._smoothing_factor)
        scored = tuple(
            replace(detection, beauty_score=float(score_landmarks(detection.landmarks).score))
            for detection in smoothed
        )

        self._stabilized = scored
        if self._history.offer(scored):
            self._consensus = compute_consensus(self._history.snapshot())
            self._notify_summary()

    def _render(self) -> None:
        if self._renderer is None:
            return
        try:
            self._renderer.render(self._stabilized)
        except Exception:
            logger.exception("Renderer failed")

    def _notify_summary(self) -> None:
        if self._on_summary is None:
            return
        try:
            self._on_summary(self._consensus)
        except Exception:
            logger.exception("Summary listener failed")

    # -- State --------------------------------------------------------------

    @property
    def stabilized(self) -> tuple[DetectionResult, ...]:
        """Detections from the most recent completed cycle."""
        return self._stabilized

    @property
    def consensus(self) -> ConsensusSummary | None:
        return self._consensus

    @property
    def history(self) -> tuple[DetectionResult, ...]:
        return self._history.snapshot()

    @property
    def frames_processed(self) -> int:
        """Completed detection cycles since start or the last reset."""
        return self._history.frame_count

    @property
    def detections_started(self) -> int:
        return self._detections_started

    @property
    def detection_failures(self) -> int:
        return self._detection_failures

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._closed
