"""Exponential frame-to-frame smoothing of detections.

Every continuous field is blended as
``previous * factor + current * (1 - factor)``; a higher factor gives more
weight to history. Categorical labels are never blended.

Correspondence between frames is positional: the i-th detection of the new
frame is smoothed against the i-th detection of the previous one. There is no
identity matching, so with several subjects a face entering or leaving the
list shifts the pairing for every later index.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from steadyface.stabilizer.types import BoundingBox, Classification, DetectionResult

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_SMOOTHING_FACTOR: float = 0.5


def _check_factor(factor: float) -> None:
    if not 0.0 <= factor <= 1.0:
        raise ValueError(f"Smoothing factor must be within [0, 1], got {factor}")


def smooth_value(previous: float | None, current: float, factor: float = DEFAULT_SMOOTHING_FACTOR) -> float:
    """Blend a single value; with no previous value, ``current`` passes through."""
    if previous is None:
        return current
    return previous * factor + current * (1 - factor)


def _smooth_box(previous: BoundingBox, current: BoundingBox, factor: float) -> BoundingBox:
    return BoundingBox(
        x=smooth_value(previous.x, current.x, factor),
        y=smooth_value(previous.y, current.y, factor),
        width=smooth_value(previous.width, current.width, factor),
        height=smooth_value(previous.height, current.height, factor),
    )


def _smooth_classification(previous: Classification, current: Classification, factor: float) -> Classification:
    # Confidence is only meaningful to blend while the label stays the same.
    if previous.label != current.label:
        return current
    return Classification(
        label=current.label,
        confidence=smooth_value(previous.confidence, current.confidence, factor),
    )


def smooth_detection(
    previous: DetectionResult | None,
    current: DetectionResult,
    factor: float = DEFAULT_SMOOTHING_FACTOR,
) -> DetectionResult:
    """Return a new detection blending ``current`` with ``previous``.

    Neither input is modified. Landmarks are blended point by point when both
    frames carry a full set; otherwise the current landmarks pass through.
    """
    _check_factor(factor)
    if previous is None:
        return current

    landmarks = current.landmarks
    if landmarks is not None and previous.landmarks is not None:
        landmarks = previous.landmarks * factor + landmarks * (1 - factor)
        landmarks.flags.writeable = False

    return replace(
        current,
        box=_smooth_box(previous.box, current.box, factor),
        age=smooth_value(previous.age, current.age, factor),
        gender=_smooth_classification(previous.gender, current.gender, factor),
        emotion=_smooth_classification(previous.emotion, current.emotion, factor),
        landmarks=landmarks,
    )


def smooth_detections(
    previous: Sequence[DetectionResult],
    current: Sequence[DetectionResult],
    factor: float = DEFAULT_SMOOTHING_FACTOR,
) -> tuple[DetectionResult, ...]:
    """Smooth a frame's detections against the previous frame by list index."""
    _check_factor(factor)
    return tuple(
        smooth_detection(previous[i] if i < len(previous) else None, detection, factor)
        for i, detection in enumerate(current)
    )
