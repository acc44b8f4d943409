"""Tests for the multi-signal scoring engine."""

import pytest

from scoring import (
    DetectionResult,
    ScoringEngine,
    TranscriptHistory,
    audio_energy_score,
    context_score,
    repetition_score,
)


@pytest.fixture
def engine(fixed_clock):
    return ScoringEngine(clock=fixed_clock)


class TestTranscriptHistory:
    """Test cases for TranscriptHistory."""

    def test_bounded_fifo(self):
        history = TranscriptHistory()
        for i in range(6):
            history.push(f"entry {i}")

        assert len(history) == 5
        assert "entry 0" not in list(history)
        assert list(history)[0] == "entry 1"

    def test_count_matching(self):
        history = TranscriptHistory(3)
        for text in ("a", "b", "a"):
            history.push(text)
        assert history.count_matching(lambda t: t == "a") == 2

    def test_clear(self):
        history = TranscriptHistory()
        history.push("x")
        history.clear()
        assert len(history) == 0


class TestSignalScores:
    """Test cases for the individual signal functions."""

    def test_context_capped(self):
        words = "please hurry now quick".split()
        assert context_score(words) == 0.3

    def test_context_distinct_terms(self):
        assert context_score("please please please".split()) == pytest.approx(0.15)

    def test_context_exact_tokens_only(self):
        assert context_score("nowhere pleased".split()) == 0

    def test_repetition(self):
        assert repetition_score(1) == 0
        assert repetition_score(2) == pytest.approx(0.1)
        assert repetition_score(5) == pytest.approx(0.2)

    def test_repetition_never_negative(self):
        assert repetition_score(0) == 0

    @pytest.mark.parametrize("energy,expected", [
        (0.0, 0.0),
        (0.2, 0.0),
        (0.21, 0.08),
        (0.4, 0.08),
        (0.41, 0.15),
        (1.0, 0.15),
    ])
    def test_audio_energy_levels(self, energy, expected):
        assert audio_energy_score(energy) == expected


class TestScoringEngine:
    """Test cases for ScoringEngine.score."""

    def test_no_keyword_returns_none(self, engine):
        assert engine.score("what a lovely morning") is None
        assert len(engine.history) == 0

    def test_empty_transcript(self, engine):
        assert engine.score("   ") is None

    def test_context_alone_is_not_enough(self, engine):
        """Keyword presence is mandatory; context words cannot substitute."""
        assert engine.score("please hurry now quick") is None
        assert engine.current_confidence == 0

    def test_keyword_alone_below_threshold(self, engine):
        """'sos' (weight 1.0) alone scores 0.55, below the default 0.6."""
        assert engine.score("SOS") is None
        assert engine.current_confidence == pytest.approx(0.55)

    def test_keyword_with_loud_audio(self, fixed_clock):
        engine = ScoringEngine(energy_reader=lambda: 0.5, clock=fixed_clock)
        result = engine.score("sos")

        assert isinstance(result, DetectionResult)
        assert result.confidence == pytest.approx(0.70)
        assert result.analysis.audio_energy_score == 0.15
        assert result.analysis.keyword_score == 1.0

    def test_keyword_with_moderate_audio(self, fixed_clock):
        engine = ScoringEngine(energy_reader=lambda: 0.3, clock=fixed_clock)
        result = engine.score("sos")

        assert result is not None
        assert result.confidence == pytest.approx(0.63)
        assert result.analysis.audio_energy_score == 0.08

    def test_weak_keyword_with_moderate_audio(self, fixed_clock):
        """'help' (0.7) scores 0.385 + 0.08, still below the threshold."""
        engine = ScoringEngine(energy_reader=lambda: 0.3, clock=fixed_clock)
        assert engine.score("help") is None
        assert engine.current_confidence == pytest.approx(0.385 + 0.08)

    def test_repetition_raises_confidence(self, engine):
        """'help me' three times: only the third crosses the threshold."""
        assert engine.score("help me") is None
        assert engine.current_confidence == pytest.approx(0.495)

        assert engine.score("help me") is None
        assert engine.current_confidence == pytest.approx(0.595)

        result = engine.score("help me")
        assert result is not None
        assert result.analysis.repetition_score == pytest.approx(0.2)
        assert result.confidence == pytest.approx(0.695)

    def test_repetition_counts_same_language_only(self, engine):
        engine.score("bachao")
        engine.score("help me")
        assert engine.current_confidence == pytest.approx(0.495)

    def test_repetition_window(self, fixed_clock):
        """After five unrelated transcripts, an old keyword no longer counts."""
        engine = ScoringEngine(sensitivity_threshold=0.0, clock=fixed_clock)
        engine.score("help me")
        for i in range(5):
            engine.history.push(f"nothing {i}")

        result = engine.score("help me")
        assert result.analysis.repetition_score == 0

    def test_context_boost(self, engine):
        result = engine.score("help me please")
        assert result is not None
        assert result.analysis.context_score == pytest.approx(0.15)
        assert result.confidence == pytest.approx(0.645)

    def test_final_score_capped(self, fixed_clock):
        engine = ScoringEngine(energy_reader=lambda: 0.9, clock=fixed_clock)
        for _ in range(3):
            result = engine.score("sos please hurry now")

        assert result.analysis.final_score == 1.0
        assert result.confidence == 1.0

    def test_best_weighted_match_reported(self, fixed_clock):
        engine = ScoringEngine(sensitivity_threshold=0.0, clock=fixed_clock)
        result = engine.score("please help me")
        assert result.matched_keyword == "help me"
        assert result.analysis.keyword_score == 0.9

    def test_result_fields(self, fixed_clock):
        engine = ScoringEngine(energy_reader=lambda: 0.5, clock=fixed_clock)
        result = engine.score("  Mujhe Bachao  ")

        assert result.transcript == "  Mujhe Bachao  "
        assert result.matched_keyword == "mujhe bachao"
        assert result.language == "hindi"
        assert result.timestamp == fixed_clock()

    def test_to_dict(self, fixed_clock):
        engine = ScoringEngine(energy_reader=lambda: 0.5, clock=fixed_clock)
        data = engine.score("sos").to_dict()

        assert data["timestamp"] == "2026-10-19T12:00:00"
        assert data["analysis"]["audio_energy_score"] == 0.15
        assert data["matched_keyword"] == "sos"

    def test_custom_threshold(self, fixed_clock):
        engine = ScoringEngine(sensitivity_threshold=0.5, clock=fixed_clock)
        assert engine.score("sos") is not None

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValueError, match="between 0 and 1"):
            ScoringEngine(sensitivity_threshold=threshold)

    def test_reset(self, engine):
        engine.score("help me")
        engine.reset()
        assert engine.current_confidence == 0
        assert len(engine.history) == 0

    def test_no_keyword_keeps_confidence(self, engine):
        engine.score("help me")
        engine.score("nothing to see")
        assert engine.current_confidence == pytest.approx(0.495)
        assert len(engine.history) == 1
