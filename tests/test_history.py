"""Tests for the history buffer and consensus aggregation."""

from __future__ import annotations

import pytest
from fakes import make_detection

from steadyface.stabilizer.aggregation import compute_consensus, median, mode, mode_of
from steadyface.stabilizer.history import HistoryBuffer
from steadyface.stabilizer.types import ConsensusSummary

# ---------------------------------------------------------------------------
# HistoryBuffer
# ---------------------------------------------------------------------------


class TestHistoryBuffer:
    def test_defaults(self) -> None:
        buffer = HistoryBuffer()
        assert buffer.capacity == 30
        assert buffer.sample_every == 5
        assert len(buffer) == 0
        assert buffer.frame_count == 0

    def test_push_never_exceeds_capacity(self) -> None:
        buffer = HistoryBuffer()
        for i in range(1000):
            buffer.push(make_detection(age=float(i)))
            assert len(buffer) <= 30

        assert [d.age for d in buffer.snapshot()] == [float(i) for i in range(970, 1000)]

    def test_offer_samples_every_kth_frame(self) -> None:
        buffer = HistoryBuffer(sample_every=5)
        changed = [buffer.offer([make_detection(age=float(i))]) for i in range(12)]

        assert changed == [i % 5 == 0 for i in range(12)]
        assert [d.age for d in buffer.snapshot()] == [0.0, 5.0, 10.0]
        assert buffer.frame_count == 12

    def test_offer_keeps_only_first_subject(self) -> None:
        buffer = HistoryBuffer(sample_every=1)
        buffer.offer([make_detection(age=20.0), make_detection(age=60.0)])

        assert [d.age for d in buffer.snapshot()] == [20.0]

    def test_empty_frames_add_nothing_but_count(self) -> None:
        buffer = HistoryBuffer(sample_every=1)

        assert buffer.offer([]) is False
        assert len(buffer) == 0
        assert buffer.frame_count == 1

    def test_snapshot_is_a_copy(self) -> None:
        buffer = HistoryBuffer(sample_every=1)
        buffer.offer([make_detection()])
        snapshot = buffer.snapshot()
        buffer.offer([make_detection()])

        assert len(snapshot) == 1
        assert len(buffer) == 2

    def test_clear_resets_counter(self) -> None:
        buffer = HistoryBuffer(sample_every=5)
        for _ in range(7):
            buffer.offer([make_detection()])

        buffer.clear()
        buffer.clear()

        assert buffer.snapshot() == ()
        assert buffer.frame_count == 0
        # the next frame is frame 0 again and gets sampled
        assert buffer.offer([make_detection()]) is True

    @pytest.mark.parametrize(("capacity", "sample_every"), [(0, 5), (30, 0)])
    def test_rejects_invalid_arguments(self, capacity: int, sample_every: int) -> None:
        with pytest.raises(ValueError):
            HistoryBuffer(capacity=capacity, sample_every=sample_every)


# ---------------------------------------------------------------------------
# Median / mode
# ---------------------------------------------------------------------------


class TestMedian:
    def test_even_length_averages_middle_pair(self) -> None:
        assert median([1, 2, 3, 4]) == 2.5

    def test_odd_length_takes_middle(self) -> None:
        assert median([1, 2, 3]) == 2

    def test_unsorted_input(self) -> None:
        assert median([9.0, 1.0, 5.0, 3.0]) == 4.0

    def test_empty_is_none(self) -> None:
        assert median([]) is None


class TestMode:
    def test_highest_count_wins(self) -> None:
        assert mode({"A": 3, "B": 5, "C": 1}) == "B"

    def test_empty_is_none(self) -> None:
        assert mode({}) is None

    def test_tie_is_deterministic(self) -> None:
        counts = {"A": 2, "B": 2}
        assert mode(counts) == mode(dict(counts))
        assert mode(counts) in {"A", "B"}

    def test_mode_of_labels(self) -> None:
        assert mode_of(["sad", "happy", "happy", "neutral"]) == "happy"
        assert mode_of([]) is None


# ---------------------------------------------------------------------------
# Consensus
# ---------------------------------------------------------------------------


class TestComputeConsensus:
    def test_empty_history_has_no_summary(self) -> None:
        assert compute_consensus(()) is None

    def test_median_and_mode_fields(self) -> None:
        entries = [
            make_detection(age=20.0, gender="male", emotion="happy", beauty_score=4.0),
            make_detection(age=40.0, gender="female", emotion="happy", beauty_score=6.0),
            make_detection(age=30.0, gender="female", emotion="sad", beauty_score=9.0),
        ]

        assert compute_consensus(entries) == ConsensusSummary(
            age=30.0,
            gender="female",
            emotion="happy",
            beauty_score=6.0,
        )

    def test_unscored_entries_are_skipped_for_beauty(self) -> None:
        entries = [make_detection(beauty_score=None), make_detection(beauty_score=7.0)]
        summary = compute_consensus(entries)
        assert summary is not None
        assert summary.beauty_score == 7.0

    def test_no_scores_gives_no_beauty(self) -> None:
        summary = compute_consensus([make_detection(beauty_score=None)])
        assert summary is not None
        assert summary.beauty_score is None

    def test_decimated_beauty_scores(self) -> None:
        buffer = HistoryBuffer(sample_every=5)
        sampled = iter([4.0, 6.0, 8.0, 5.0, 7.0, 9.0])
        for frame in range(26):
            score = next(sampled) if frame % 5 == 0 else 1.0
            buffer.offer([make_detection(beauty_score=score)])

        summary = compute_consensus(buffer.snapshot())

        assert len(buffer) == 6
        assert summary is not None
        assert summary.beauty_score == 6.5
