"""Test doubles and synthetic data for the stabilization pipeline.

``make_face`` builds a 68-point landmark set that is exactly mirror-symmetric
about ``x = cx``, with known proportions:

- face width (0 -> 16) = 200, eye span (39 -> 42) = 50
- face height (27 -> 8) = 210
- mouth width (48 -> 54) = 64, nose width (31 -> 35) = 40

which scores symmetry 1.0, proportion ~0.7193 and composite 9.
"""

from __future__ import annotations

import asyncio
import math
from collections import deque
from typing import TYPE_CHECKING, Any

import numpy as np

from steadyface.config import Settings
from steadyface.stabilizer.detector import RawDetection
from steadyface.stabilizer.types import BoundingBox, Classification, DetectionResult, as_landmark_set

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Synthetic landmarks
# ---------------------------------------------------------------------------

# index on the subject's right side -> mirrored index on the left side
_MIRROR: dict[int, int] = {
    **{i: 16 - i for i in range(8)},
    **{17 + k: 26 - k for k in range(5)},
    31: 35,
    32: 34,
    36: 45,
    37: 44,
    38: 43,
    39: 42,
    40: 47,
    41: 46,
    48: 54,
    49: 53,
    50: 52,
    59: 55,
    58: 56,
    60: 64,
    61: 63,
    67: 65,
}


def make_face(cx: float = 320.0, cy: float = 240.0) -> NDArray[np.float64]:
    """Return a writable, mirror-symmetric (68, 2) landmark array."""
    pts = np.zeros((68, 2), dtype=np.float64)

    # jaw: half ellipse, chin (8) on the midline
    for i in range(9):
        t = math.pi * i / 16
        pts[i] = (cx - 100 * math.cos(t), cy + 150 * math.sin(t))
    pts[8] = (cx, cy + 150)

    for k in range(5):
        pts[17 + k] = (cx - 90 + 17.5 * k, cy - 80)
    for k in range(4):
        pts[27 + k] = (cx, cy - 60 + 15 * k)
    pts[31] = (cx - 20, cy + 5)
    pts[32] = (cx - 10, cy + 8)
    pts[33] = (cx, cy + 10)

    pts[36] = (cx - 65, cy - 50)
    pts[37] = (cx - 55, cy - 58)
    pts[38] = (cx - 35, cy - 58)
    pts[39] = (cx - 25, cy - 50)
    pts[40] = (cx - 35, cy - 42)
    pts[41] = (cx - 55, cy - 42)

    pts[48] = (cx - 32, cy + 60)
    pts[49] = (cx - 20, cy + 52)
    pts[50] = (cx - 8, cy + 50)
    pts[51] = (cx, cy + 52)
    pts[57] = (cx, cy + 75)
    pts[58] = (cx - 8, cy + 74)
    pts[59] = (cx - 20, cy + 70)

    pts[60] = (cx - 24, cy + 62)
    pts[61] = (cx - 10, cy + 58)
    pts[62] = (cx, cy + 58)
    pts[66] = (cx, cy + 67)
    pts[67] = (cx - 10, cy + 66)

    for right, left in _MIRROR.items():
        x, y = pts[right]
        pts[left] = (2 * cx - x, y)
    return pts


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "api_key": None,
        "detection_interval_ms": 100.0,
        "tick_interval_ms": 0.0,
        "smoothing_factor": 0.5,
        "history_capacity": 30,
        "history_sample_every": 5,
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


def make_raw(
    age: float = 30.0,
    *,
    gender: str = "female",
    gender_probability: float = 0.9,
    expressions: Mapping[str, float] | None = None,
    landmarks: Any = None,
    box: BoundingBox | None = None,
) -> RawDetection:
    return RawDetection(
        box=box or BoundingBox(x=100.0, y=80.0, width=200.0, height=240.0),
        age=age,
        gender=gender,
        gender_probability=gender_probability,
        expressions=expressions if expressions is not None else {"happy": 0.8, "neutral": 0.2},
        landmarks=landmarks,
    )


def make_detection(
    age: float = 30.0,
    *,
    gender: str = "female",
    emotion: str = "happy",
    confidence: float = 0.9,
    beauty_score: float | None = None,
    landmarks: Any = None,
    box: BoundingBox | None = None,
) -> DetectionResult:
    return DetectionResult(
        box=box or BoundingBox(x=100.0, y=80.0, width=200.0, height=240.0),
        age=age,
        gender=Classification(label=gender, confidence=confidence),
        emotion=Classification(label=emotion, confidence=confidence),
        landmarks=as_landmark_set(landmarks),
        beauty_score=beauty_score,
    )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFrameSource:
    def __init__(
        self,
        frame_size: tuple[float, float] = (640.0, 480.0),
        display_size: tuple[float, float] | None = None,
        *,
        ready: bool = True,
    ) -> None:
        self._frame_size = frame_size
        self._display_size = display_size or frame_size
        self.ready = ready
        self.reads = 0

    @property
    def frame_size(self) -> tuple[float, float]:
        return self._frame_size

    @property
    def display_size(self) -> tuple[float, float]:
        return self._display_size

    def is_ready(self) -> bool:
        return self.ready

    def read(self) -> str:
        self.reads += 1
        return f"frame-{self.reads}"


class ScriptedDetector:
    """Async detector replaying a script of results (or exceptions to raise).

    Set ``gate`` to an ``asyncio.Event`` to hold calls until it is set.
    Once the script runs out, every call returns no detections.
    """

    def __init__(self, script: Sequence[list[RawDetection] | Exception] = ()) -> None:
        self._script: deque[list[RawDetection] | Exception] = deque(script)
        self.gate: asyncio.Event | None = None
        self.frames: list[Any] = []
        self.active = 0
        self.max_active = 0

    @property
    def calls(self) -> int:
        return len(self.frames)

    async def detect(self, frame: Any) -> list[RawDetection]:
        self.frames.append(frame)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            item = self._script.popleft() if self._script else []
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.active -= 1


class RecordingRenderer:
    def __init__(self) -> None:
        self.frames: list[tuple[DetectionResult, ...]] = []

    def render(self, detections: Sequence[DetectionResult]) -> None:
        self.frames.append(tuple(detections))
