"""Consensus over the detection history: medians for numbers, modes for labels."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

import numpy as np

from steadyface.stabilizer.types import ConsensusSummary

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from steadyface.stabilizer.types import DetectionResult


def median(values: Sequence[float]) -> float | None:
    """Median of ``values``; the mean of the two middle values for even lengths.

    Returns None for an empty sequence.
    """
    if len(values) == 0:
        return None
    return float(np.median(np.asarray(values, dtype=np.float64)))


def mode(counts: Mapping[str, int]) -> str | None:
    """Key with the highest count; among equal counts the first key wins."""
    best: str | None = None
    best_count = 0
    for key, count in counts.items():
        if best is None or count > best_count:
            best, best_count = key, count
    return best


def mode_of(labels: Iterable[str]) -> str | None:
    """Most frequent label, counting in encounter order."""
    return mode(Counter(labels))


def compute_consensus(entries: Sequence[DetectionResult]) -> ConsensusSummary | None:
    """Aggregate history entries into a single summary, or None when empty."""
    if not entries:
        return None

    age = median([entry.age for entry in entries])
    gender = mode_of(entry.gender.label for entry in entries)
    emotion = mode_of(entry.emotion.label for entry in entries)
    beauty = median([entry.beauty_score for entry in entries if entry.beauty_score is not None])

    if age is None or gender is None or emotion is None:
        raise RuntimeError("Consensus of non-empty history is incomplete")
    return ConsensusSummary(age=age, gender=gender, emotion=emotion, beauty_score=beauty)
