"""Pydantic response schemas for the SteadyFace API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from steadyface.stabilizer.types import ConsensusSummary, DetectionResult


class Box(BaseModel):
    """Bounding box in display pixels, top-left origin."""

    x: float
    y: float
    width: float
    height: float


class Point(BaseModel):
    x: float
    y: float


class Prediction(BaseModel):
    """A categorical prediction with its confidence."""

    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class StabilizedFace(BaseModel):
    """One smoothed detection from the latest completed cycle."""

    box: Box
    age: float
    gender: Prediction
    emotion: Prediction
    landmarks: list[Point] | None = Field(default=None, description="68 landmark points, or null")
    beauty_score: float | None = Field(default=None, description="Composite score (1-10)")

    @classmethod
    def from_detection(cls, detection: DetectionResult) -> StabilizedFace:
        landmarks = None
        if detection.landmarks is not None:
            landmarks = [Point(x=float(x), y=float(y)) for x, y in detection.landmarks]
        return cls(
            box=Box(
                x=detection.box.x,
                y=detection.box.y,
                width=detection.box.width,
                height=detection.box.height,
            ),
            age=detection.age,
            gender=Prediction(label=detection.gender.label, confidence=detection.gender.confidence),
            emotion=Prediction(label=detection.emotion.label, confidence=detection.emotion.confidence),
            landmarks=landmarks,
            beauty_score=detection.beauty_score,
        )


class Consensus(BaseModel):
    """Median/mode aggregate over the recent detection history."""

    age: float
    gender: str
    emotion: str
    beauty_score: float | None


class SummaryResponse(BaseModel):
    """Current consensus summary; ``summary`` is null while history is empty."""

    summary: Consensus | None
    samples: int = Field(description="Number of history entries the summary is built from")

    @classmethod
    def from_summary(cls, summary: ConsensusSummary | None, samples: int) -> SummaryResponse:
        if summary is None:
            return cls(summary=None, samples=samples)
        return cls(
            summary=Consensus(
                age=summary.age,
                gender=summary.gender,
                emotion=summary.emotion,
                beauty_score=summary.beauty_score,
            ),
            samples=samples,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    running: bool
    detection_in_flight: bool
    detections_started: int
    detection_failures: int
    frames_processed: int
    history_size: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
