"""Value types shared by the stabilization pipeline.

All detection types are frozen. A new frame produces new objects; the previous
frame's objects are superseded, never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

# Landmark sets are read-only (68, 2) float64 arrays; row i is landmark i as (x, y).
LANDMARK_COUNT: int = 68


class LandmarkRegion(StrEnum):
    JAW = "jaw"
    RIGHT_EYEBROW = "right_eyebrow"
    LEFT_EYEBROW = "left_eyebrow"
    NOSE_BRIDGE = "nose_bridge"
    NOSE_BASE = "nose_base"
    RIGHT_EYE = "right_eye"
    LEFT_EYE = "left_eye"
    OUTER_LIP = "outer_lip"
    INNER_LIP = "inner_lip"


LANDMARK_REGIONS: dict[LandmarkRegion, range] = {
    LandmarkRegion.JAW: range(0, 17),
    LandmarkRegion.RIGHT_EYEBROW: range(17, 22),
    LandmarkRegion.LEFT_EYEBROW: range(22, 27),
    LandmarkRegion.NOSE_BRIDGE: range(27, 31),
    LandmarkRegion.NOSE_BASE: range(31, 36),
    LandmarkRegion.RIGHT_EYE: range(36, 42),
    LandmarkRegion.LEFT_EYE: range(42, 48),
    LandmarkRegion.OUTER_LIP: range(48, 60),
    LandmarkRegion.INNER_LIP: range(60, 68),
}


def as_landmark_set(points: ArrayLike | None) -> NDArray[np.float64] | None:
    """Convert points to a read-only (68, 2) array, or None if not a full set.

    Partial, malformed or non-finite landmark lists are dropped entirely rather
    than stored.
    """
    if points is None:
        return None
    try:
        array = np.array(points, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if array.shape != (LANDMARK_COUNT, 2):
        return None
    if not np.isfinite(array).all():
        return None
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel space, top-left origin."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Classification:
    """A categorical prediction: label plus confidence in [0, 1]."""

    label: str
    confidence: float


@dataclass(frozen=True, eq=False)
class DetectionResult:
    """One subject's measured facial attributes for a single frame.

    ``landmarks`` is either a full 68-point set or None. ``beauty_score`` is in
    [1, 10] once scored, None before.
    """

    box: BoundingBox
    age: float
    gender: Classification
    emotion: Classification
    landmarks: NDArray[np.float64] | None = None
    beauty_score: float | None = None


@dataclass(frozen=True)
class ConsensusSummary:
    """Median/mode aggregate over the detection history."""

    age: float
    gender: str
    emotion: str
    beauty_score: float | None
