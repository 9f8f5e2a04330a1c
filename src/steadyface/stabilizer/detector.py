"""Detector gateway, frame source and renderer contracts.

The detector, the video source and the drawing layer are external
collaborators. This module defines what the session expects from them and
turns raw detector output into ``DetectionResult`` values in display space.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

import numpy as np

from steadyface.stabilizer.types import (
    BoundingBox,
    Classification,
    ConsensusSummary,
    DetectionResult,
    as_landmark_set,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from numpy.typing import ArrayLike

NEUTRAL_EMOTION = "neutral"


@dataclass(frozen=True, eq=False)
class RawDetection:
    """One face as reported by the detector, before any stabilization.

    Coordinates are in pixel space of the source frame.
    """

    box: BoundingBox
    age: float
    gender: str
    gender_probability: float
    expressions: Mapping[str, float] = field(default_factory=dict)
    landmarks: ArrayLike | None = None


class DetectorGateway(Protocol):
    """Asynchronous face detector."""

    async def detect(self, frame: Any) -> list[RawDetection]:
        """Detect faces in a frame.

        May return an empty list. Failures propagate as exceptions and are
        handled by the caller.
        """
        ...


class FaceDetector(Protocol):
    """Synchronous face detector, e.g. a blocking model call."""

    def detect(self, frame: Any) -> list[RawDetection]:
        """Detect faces in a frame."""
        ...


class FrameSource(Protocol):
    """Provider of the current video frame."""

    @property
    def frame_size(self) -> tuple[float, float]:
        """Pixel dimensions (width, height) of frames returned by ``read``."""
        ...

    @property
    def display_size(self) -> tuple[float, float]:
        """Dimensions (width, height) of the surface results are drawn on."""
        ...

    def is_ready(self) -> bool:
        """Return True when a decodable frame is available."""
        ...

    def read(self) -> Any:
        """Return the current frame."""
        ...


class Renderer(Protocol):
    """Consumer of the live stabilized state."""

    def render(self, detections: Sequence[DetectionResult]) -> None:
        """Draw the given detections."""
        ...


SummaryListener: TypeAlias = Callable[[ConsensusSummary | None], None]


class ExecutorDetectorGateway:
    """Adapts a synchronous ``FaceDetector`` to the async gateway contract.

    Calls run on a single worker thread so the event loop keeps ticking while
    the model works. No timeout is applied to the call.
    """

    def __init__(self, detector: FaceDetector) -> None:
        self._detector = detector
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="face-detect",
        )

    async def detect(self, frame: Any) -> list[RawDetection]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._detector.detect, frame)

    def shutdown(self) -> None:
        """Shut down the worker thread, waiting for a running call to finish."""
        self._executor.shutdown(wait=True)


def scale_detection(
    raw: RawDetection,
    frame_size: tuple[float, float],
    display_size: tuple[float, float],
) -> RawDetection:
    """Rescale box and landmarks from frame pixels into display coordinates.

    A zero frame dimension leaves the corresponding axis unscaled.
    """
    frame_w, frame_h = frame_size
    display_w, display_h = display_size
    sx = display_w / frame_w if frame_w else 1.0
    sy = display_h / frame_h if frame_h else 1.0
    if sx == 1.0 and sy == 1.0:
        return raw

    box = BoundingBox(
        x=raw.box.x * sx,
        y=raw.box.y * sy,
        width=raw.box.width * sx,
        height=raw.box.height * sy,
    )
    landmarks = raw.landmarks
    if landmarks is not None:
        points = np.array(landmarks, dtype=np.float64)
        if points.ndim == 2 and points.shape[1] == 2:
            landmarks = points * np.array([sx, sy])
    return RawDetection(
        box=box,
        age=raw.age,
        gender=raw.gender,
        gender_probability=raw.gender_probability,
        expressions=raw.expressions,
        landmarks=landmarks,
    )


def dominant_expression(expressions: Mapping[str, float]) -> Classification:
    """Return the most probable expression; the first one wins on ties."""
    if not expressions:
        return Classification(label=NEUTRAL_EMOTION, confidence=0.0)
    label = max(expressions, key=expressions.__getitem__)
    return Classification(label=label, confidence=float(expressions[label]))


def to_detection_result(raw: RawDetection) -> DetectionResult:
    """Convert a raw detection into an unscored ``DetectionResult``."""
    return DetectionResult(
        box=raw.box,
        age=float(raw.age),
        gender=Classification(label=raw.gender, confidence=float(raw.gender_probability)),
        emotion=dominant_expression(raw.expressions),
        landmarks=as_landmark_set(raw.landmarks),
    )
