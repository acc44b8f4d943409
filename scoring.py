#!/usr/bin/env python3
"""
Multi-signal emergency scoring for Guardian Voice.

A finalized transcript is scored from four signals:
1. Keyword match, weighted by the lexicon (mandatory gate)
2. Distress context words co-occurring with the keyword
3. Repetition of same-language distress phrases in recent history
4. Current microphone loudness

No keyword alone can reach the default threshold: the keyword signal is
scaled by 0.55, so at least one other signal has to corroborate it.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Iterator, Mapping, Optional

from lexicon import DISTRESS_CONTEXT, EMERGENCY_KEYWORDS, language_matches, lookup_best_match

DEFAULT_SENSITIVITY_THRESHOLD = 0.6
HISTORY_SIZE = 5

KEYWORD_MULTIPLIER = 0.55
CONTEXT_TERM_SCORE = 0.15
CONTEXT_SCORE_CAP = 0.3
REPETITION_STEP = 0.1
REPETITION_SCORE_CAP = 0.2

# (energy above, score) checked in order
ENERGY_LEVELS = (
    (0.4, 0.15),
    (0.2, 0.08),
)


@dataclass(frozen=True)
class AnalysisDetails:
    """Per-signal breakdown of a final score."""
    keyword_score: float
    context_score: float
    repetition_score: float
    audio_energy_score: float
    final_score: float


@dataclass(frozen=True)
class DetectionResult:
    """Emergency detection for one finalized transcript."""
    transcript: str
    matched_keyword: str
    language: str
    confidence: float
    timestamp: datetime
    analysis: AnalysisDetails

    def to_dict(self) -> dict:
        """JSON-ready representation."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def __str__(self):
        return (f"'{self.matched_keyword}' ({self.language}) "
                f"confidence {self.confidence:.0%}")


class TranscriptHistory:
    """Bounded FIFO of recent lower-cased transcripts."""

    def __init__(self, maxlen: int = HISTORY_SIZE):
        self._items = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._items.maxlen

    def push(self, text: str):
        self._items.append(text)

    def clear(self):
        self._items.clear()

    def count_matching(self, predicate: Callable[[str], bool]) -> int:
        return sum(1 for text in self._items if predicate(text))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)


def context_score(words: list, context_terms=DISTRESS_CONTEXT) -> float:
    """Score distinct context terms appearing as whole tokens."""
    matches = context_terms.intersection(words)
    return min(len(matches) * CONTEXT_TERM_SCORE, CONTEXT_SCORE_CAP)


def repetition_score(count: int) -> float:
    """Score repeated distress; a single occurrence scores nothing."""
    return min(max(0, count - 1) * REPETITION_STEP, REPETITION_SCORE_CAP)


def audio_energy_score(energy: float) -> float:
    """Discrete loudness boost."""
    for level, score in ENERGY_LEVELS:
        if energy > level:
            return score
    return 0.0


class ScoringEngine:
    """
    Scores finalized transcripts and decides emergency / no emergency.

    Usage:
        engine = ScoringEngine(energy_reader=lambda: monitor.energy)
        result = engine.score("help me please")
        if result:
            # Raise the alert
    """

    def __init__(self, sensitivity_threshold: float = DEFAULT_SENSITIVITY_THRESHOLD,
                 energy_reader: Optional[Callable[[], float]] = None,
                 lexicon: Mapping[str, tuple] = EMERGENCY_KEYWORDS,
                 context_terms=DISTRESS_CONTEXT,
                 clock: Optional[Callable[[], datetime]] = None,
                 history_size: int = HISTORY_SIZE):
        if not 0 <= sensitivity_threshold <= 1:
            raise ValueError(
                f"Sensitivity threshold must be between 0 and 1, got {sensitivity_threshold}"
            )
        self.sensitivity_threshold = sensitivity_threshold
        self.energy_reader = energy_reader
        self.lexicon = lexicon
        self.context_terms = frozenset(context_terms)
        self.clock = clock or datetime.now
        self.history = TranscriptHistory(history_size)
        self.current_confidence = 0.0

    def reset(self):
        """Forget history and live confidence."""
        self.history.clear()
        self.current_confidence = 0.0

    def _current_energy(self) -> float:
        if self.energy_reader is None:
            return 0.0
        return self.energy_reader()

    def score(self, transcript: str) -> Optional[DetectionResult]:
        """
        Score one finalized transcript.

        Args:
            transcript: Finalized text from the recognizer

        Returns:
            DetectionResult if the final score reaches the threshold,
            None otherwise (including when no keyword is present)
        """
        lower = transcript.lower().strip()
        if not lower:
            return None

        match = lookup_best_match(lower, self.lexicon)
        if match is None:
            return None

        context = context_score(lower.split(), self.context_terms)

        self.history.push(lower)
        count = self.history.count_matching(
            lambda text: language_matches(text, match.language, self.lexicon)
        )
        repetition = repetition_score(count)

        energy = audio_energy_score(self._current_energy())

        final = min(1.0, match.weight * KEYWORD_MULTIPLIER + context + repetition + energy)
        self.current_confidence = final

        logging.debug(
            f"Scored '{lower}': keyword={match.phrase} ({match.weight}) "
            f"context={context:.2f} repetition={repetition:.2f} "
            f"energy={energy:.2f} final={final:.3f}"
        )

        if final < self.sensitivity_threshold:
            return None

        return DetectionResult(
            transcript=transcript,
            matched_keyword=match.phrase,
            language=match.language,
            confidence=final,
            timestamp=self.clock(),
            analysis=AnalysisDetails(
                keyword_score=match.weight,
                context_score=context,
                repetition_score=repetition,
                audio_energy_score=energy,
                final_score=final,
            ),
        )
