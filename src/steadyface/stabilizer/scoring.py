"""Facial metric scoring from 68-point landmark geometry.

The composite score combines a left/right symmetry measure with three
proportion ratios and maps the result onto the integer range [1, 10]. Scoring
never raises: malformed input yields the neutral score instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from steadyface.stabilizer.types import LANDMARK_COUNT

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

NEUTRAL_SCORE: int = 5
MIN_SCORE: int = 1
MAX_SCORE: int = 10

MIDLINE_INDEX: int = 27

# (left, right) landmark index pairs compared for symmetry.
SYMMETRY_PAIRS: tuple[tuple[int, int], ...] = (
    # jaw
    (0, 16),
    (1, 15),
    (2, 14),
    (3, 13),
    (4, 12),
    (5, 11),
    (6, 10),
    # eyebrows
    (17, 26),
    (18, 25),
    (19, 24),
    (20, 23),
    (21, 22),
    # eyes
    (36, 45),
    (37, 44),
    (38, 43),
    (39, 42),
    (40, 47),
    (41, 46),
    # lips
    (48, 54),
    (49, 53),
    (50, 52),
    (59, 55),
    (58, 56),
)

HORIZONTAL_WEIGHT: float = 0.7
VERTICAL_WEIGHT: float = 0.3
VERTICAL_TOLERANCE_PX: float = 20.0

IDEAL_EYE_TO_FACE: float = 0.46
IDEAL_LENGTH_TO_WIDTH: float = 1.618
IDEAL_MOUTH_TO_NOSE: float = 1.618
EYE_RATIO_WEIGHT: float = 0.3
LENGTH_RATIO_WEIGHT: float = 0.4
MOUTH_RATIO_WEIGHT: float = 0.3
# Stand-in for a ratio whose denominator collapses to zero.
NEUTRAL_RATIO_SCORE: float = 0.5

SYMMETRY_WEIGHT: float = 0.6
PROPORTION_WEIGHT: float = 0.4


@dataclass(frozen=True)
class FacialScore:
    """Outcome of scoring one landmark set.

    ``error`` is set when the neutral fallback was used; the component scores
    are None in that case.
    """

    score: int
    symmetry: float | None = None
    proportion: float | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def symmetry_score(landmarks: NDArray[np.float64]) -> float:
    """Average left/right symmetry over ``SYMMETRY_PAIRS``, in [0, 1]."""
    midline = landmarks[MIDLINE_INDEX, 0]
    total = 0.0
    for left_idx, right_idx in SYMMETRY_PAIRS:
        left_x, left_y = landmarks[left_idx]
        right_x, right_y = landmarks[right_idx]

        left_dist = abs(midline - left_x)
        right_dist = abs(right_x - midline)
        widest = max(left_dist, right_dist)
        horizontal = 1.0 if widest == 0 else 1.0 - abs(left_dist - right_dist) / widest

        vertical = 1.0 - abs(left_y - right_y) / VERTICAL_TOLERANCE_PX
        vertical = min(1.0, max(0.0, vertical))

        total += HORIZONTAL_WEIGHT * horizontal + VERTICAL_WEIGHT * vertical
    return float(total / len(SYMMETRY_PAIRS))


def _ratio_score(numerator: float, denominator: float, ideal: float) -> float:
    if denominator == 0:
        return NEUTRAL_RATIO_SCORE
    ratio = numerator / denominator
    return 1.0 - abs(ratio - ideal) / ideal


def proportion_score(landmarks: NDArray[np.float64]) -> float:
    """Closeness of three facial ratios to their ideals, weighted 0.3/0.4/0.3.

    Not bounded below: a ratio far from its ideal scores negative.
    """
    face_width = abs(landmarks[16, 0] - landmarks[0, 0])
    eye_span = abs(landmarks[39, 0] - landmarks[42, 0])
    face_height = abs(landmarks[8, 1] - landmarks[27, 1])
    mouth_width = abs(landmarks[54, 0] - landmarks[48, 0])
    nose_width = abs(landmarks[35, 0] - landmarks[31, 0])

    eye = _ratio_score(eye_span, face_width, IDEAL_EYE_TO_FACE)
    length = _ratio_score(face_height, face_width, IDEAL_LENGTH_TO_WIDTH)
    mouth = _ratio_score(mouth_width, nose_width, IDEAL_MOUTH_TO_NOSE)
    return float(EYE_RATIO_WEIGHT * eye + LENGTH_RATIO_WEIGHT * length + MOUTH_RATIO_WEIGHT * mouth)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def score_landmarks(landmarks: ArrayLike | None) -> FacialScore:
    """Score a landmark set, falling back to the neutral score on bad input."""
    if landmarks is None:
        return FacialScore(score=NEUTRAL_SCORE, error="no landmarks")
    try:
        points = np.asarray(landmarks, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 2 or points.shape[0] < LANDMARK_COUNT:
            return FacialScore(score=NEUTRAL_SCORE, error=f"expected {LANDMARK_COUNT} points, got shape {points.shape}")
        if not np.isfinite(points).all():
            return FacialScore(score=NEUTRAL_SCORE, error="non-finite landmark coordinates")

        symmetry = symmetry_score(points)
        proportion = proportion_score(points)
        composite = _round_half_up((symmetry * SYMMETRY_WEIGHT + proportion * PROPORTION_WEIGHT) * 10)
    except (TypeError, ValueError, IndexError, ArithmeticError) as exc:
        logger.debug("Landmark scoring failed, using neutral score: %s", exc)
        return FacialScore(score=NEUTRAL_SCORE, error=str(exc))

    return FacialScore(
        score=max(MIN_SCORE, min(MAX_SCORE, composite)),
        symmetry=symmetry,
        proportion=proportion,
    )


def beauty_score(landmarks: ArrayLike | None) -> int:
    """Composite score in [1, 10]; 5 when the landmarks cannot be scored."""
    return score_landmarks(landmarks).score
