#!/usr/bin/env python3
"""
Emergency keyword lexicon for Guardian Voice.

Phrases are matched by case-insensitive substring containment. Each phrase
carries an authored weight: short ambiguous words ("stop", "fire") are low,
unambiguous urgent phrases ("sos", "call police") are high. Longer phrases
win only because they are weighted higher, never because they are longer.
"""

from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class KeywordEntry:
    """Emergency phrase with its base weight."""
    phrase: str
    weight: float


@dataclass(frozen=True)
class KeywordMatch:
    """Best lexicon match for a transcript."""
    phrase: str
    weight: float
    language: str


def _entries(*pairs) -> tuple:
    return tuple(KeywordEntry(phrase, weight) for phrase, weight in pairs)


EMERGENCY_KEYWORDS = {
    'english': _entries(
        ('help', 0.7), ('help me', 0.9), ('save me', 0.95),
        ('please help', 0.9), ('emergency', 0.95), ('sos', 1.0),
        ('call police', 1.0), ('im in danger', 1.0), ('someone help', 0.85),
        ('help quickly', 0.9), ('im scared', 0.6),
        ('theyre attacking me', 1.0), ('help me now', 0.95),
        ('im in trouble', 0.85), ('fire', 0.7), ('stop', 0.4),
        ('leave me alone', 0.8), ('get away', 0.75),
        ('dont touch me', 0.9), ('call ambulance', 1.0),
    ),
    'hindi': _entries(
        ('bachao', 0.95), ('madad', 0.85), ('mujhe bachao', 1.0),
        ('koi bachao', 0.95), ('help karo', 0.85),
        ('police bulao', 1.0), ('koi help karo', 0.85),
        ('main danger mein hoon', 1.0), ('mujhe help chahiye', 0.85),
        ('jaldi help karo', 0.9), ('arre bachao', 0.9),
        ('chhodo mujhe', 0.85), ('mat chuo', 0.9),
    ),
    'marathi': _entries(
        ('vachva', 0.95), ('madad kara', 0.85),
        ('koni tari vachva', 0.95), ('police bola', 1.0),
        ('aag lagali', 0.95), ('mala vachva', 0.95),
    ),
}

# Words that raise urgency when they co-occur with a matched keyword
DISTRESS_CONTEXT = frozenset({
    'please', 'now', 'hurry', 'fast', 'quick', 'scared', 'afraid', 'danger',
    'hurt', 'bleeding', 'attack', 'kill', 'die', 'run', 'escape', 'trapped',
    'jaldi', 'dar', 'daro', 'maro', 'maar',
})


def lookup_best_match(text_lower: str,
                      lexicon: Mapping[str, tuple] = EMERGENCY_KEYWORDS) -> Optional[KeywordMatch]:
    """
    Find the highest-weighted phrase contained in the text.

    Args:
        text_lower: Lower-cased transcript
        lexicon: Mapping of language -> KeywordEntry tuple

    Returns:
        KeywordMatch for the best entry, or None if no phrase occurs.
        Equal weights resolve to the first entry in table order.
    """
    best = None
    for language, entries in lexicon.items():
        for entry in entries:
            if entry.phrase in text_lower and (best is None or entry.weight > best.weight):
                best = KeywordMatch(entry.phrase, entry.weight, language)
    return best


def language_matches(text_lower: str, language: str,
                     lexicon: Mapping[str, tuple] = EMERGENCY_KEYWORDS) -> bool:
    """Check if any phrase of the given language occurs in the text."""
    return any(entry.phrase in text_lower for entry in lexicon.get(language, ()))


def all_keywords(lexicon: Mapping[str, tuple] = EMERGENCY_KEYWORDS) -> list:
    """Flat list of every phrase across languages."""
    return [entry.phrase for entries in lexicon.values() for entry in entries]


def build_lexicon(extra: Optional[Mapping[str, Mapping[str, float]]] = None) -> dict:
    """
    Merge configured phrases into the default lexicon.

    Args:
        extra: Mapping of language -> {phrase: weight}. Existing phrases
            have their weight replaced in place; new ones are appended.

    Returns:
        New lexicon mapping; the module defaults are not modified.

    Raises:
        ValueError: If a weight is outside (0, 1]
    """
    lexicon = {language: list(entries) for language, entries in EMERGENCY_KEYWORDS.items()}

    for language, phrases in (extra or {}).items():
        language = str(language).lower()
        entries = lexicon.setdefault(language, [])
        for phrase, weight in (phrases or {}).items():
            phrase = str(phrase).lower().strip()
            weight = float(weight)
            if not 0 < weight <= 1:
                raise ValueError(f"Keyword weight for '{phrase}' must be in (0, 1], got {weight}")
            for i, entry in enumerate(entries):
                if entry.phrase == phrase:
                    entries[i] = KeywordEntry(phrase, weight)
                    break
            else:
                entries.append(KeywordEntry(phrase, weight))

    return {language: tuple(entries) for language, entries in lexicon.items()}
