"""Scoring of fallback search candidates against an original track.

A candidate from another provider is scored 0-100 from three parts:

- title similarity, up to 50 points
- artist similarity, up to 30 points
- duration proximity, up to 20 points

Titles and artists are normalized before comparison so that promotional
noise like "(Official Video)" or "[HD]" does not count against a match.
Consumers should use ``MatchScorer.best_match`` rather than thresholding
raw scores themselves.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from rapidfuzz.utils import default_process
from unidecode import unidecode

from streamfall.models.track import Track

logger = logging.getLogger(__name__)

# ============================================================================
# PRIVATE CONSTANTS - Weights and normalization tables (not exported)
# ============================================================================

_TITLE_WEIGHT = 50.0
_ARTIST_WEIGHT = 30.0
_DURATION_CLOSE_POINTS = 20.0  # |delta| < 10s
_DURATION_NEAR_POINTS = 10.0  # |delta| < 30s
_DURATION_CLOSE_SECONDS = 10
_DURATION_NEAR_SECONDS = 30

# Words shorter than this are ignored by the overlap ratio ("a", "of", "dj")
_MIN_WORD_LENGTH = 3

DEFAULT_MATCH_THRESHOLD = 30.0

# Multi-word promotional phrases, removed before the single-word denylist
_PROMO_PHRASES = (
    "official music video",
    "official lyric video",
    "official video",
    "official audio",
    "music video",
    "lyric video",
    "original mix",
    "radio edit",
    "extended mix",
    "extended version",
    "full version",
)

_PROMO_WORDS = frozenset(
    {
        "official",
        "video",
        "audio",
        "lyrics",
        "lyric",
        "hd",
        "hq",
        "4k",
        "remix",
        "edit",
        "extended",
        "radio",
        "visualizer",
    }
)

_PHRASE_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in _PROMO_PHRASES) + r")\b"
)


# ============================================================================
# RESULT DATACLASSES
# ============================================================================


@dataclass(frozen=True)
class MatchResult:
    """Score breakdown for one candidate.

    Attributes:
        candidate: The scored candidate track.
        score: Total score (0-100).
        title_score: Title component (0-50).
        artist_score: Artist component (0-30).
        duration_score: Duration component (0, 10 or 20).
    """

    candidate: Track
    score: float
    title_score: float
    artist_score: float
    duration_score: float


# ============================================================================
# PUBLIC API
# ============================================================================


def normalize_text(text: str) -> str:
    """Normalize a title or artist for comparison.

    Transliterates to ASCII, lowercases, replaces punctuation with spaces,
    then drops promotional phrases and words. If that would leave nothing
    (a song literally called "Radio"), the unfiltered form is kept.

    Args:
        text: Raw title or artist string.

    Returns:
        Normalized, whitespace-collapsed string (possibly empty).
    """
    if not text:
        return ""
    processed = default_process(unidecode(text))
    unfiltered = " ".join(processed.split())
    stripped = _PHRASE_PATTERN.sub(" ", unfiltered)
    words = [w for w in stripped.split() if w not in _PROMO_WORDS]
    return " ".join(words) or unfiltered


def word_overlap(a: str, b: str) -> float:
    """Jaccard ratio of the significant words of two normalized strings."""
    words_a = {w for w in a.split() if len(w) >= _MIN_WORD_LENGTH}
    words_b = {w for w in b.split() if len(w) >= _MIN_WORD_LENGTH}
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def _text_score(a: str, b: str, weight: float) -> float:
    # Symbol-only titles normalize to "" on both sides
    if a == b:
        return weight
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return weight
    return weight * word_overlap(a, b)


def _duration_score(a: int, b: int) -> float:
    delta = abs(a - b)
    if delta < _DURATION_CLOSE_SECONDS:
        return _DURATION_CLOSE_POINTS
    if delta < _DURATION_NEAR_SECONDS:
        return _DURATION_NEAR_POINTS
    return 0.0


class MatchScorer:
    """Scores and picks fallback candidates for an original track."""

    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def evaluate(self, original: Track, candidate: Track) -> MatchResult:
        """Score a candidate with a per-component breakdown."""
        title_score = _text_score(
            normalize_text(original.title),
            normalize_text(candidate.title),
            _TITLE_WEIGHT,
        )
        artist_score = _text_score(
            normalize_text(original.artist),
            normalize_text(candidate.artist),
            _ARTIST_WEIGHT,
        )
        duration_score = _duration_score(original.duration, candidate.duration)
        return MatchResult(
            candidate=candidate,
            score=title_score + artist_score + duration_score,
            title_score=title_score,
            artist_score=artist_score,
            duration_score=duration_score,
        )

    def score(self, original: Track, candidate: Track) -> float:
        """Score a candidate from 0 (unrelated) to 100 (same track)."""
        return self.evaluate(original, candidate).score

    def rank(self, original: Track, candidates: Sequence[Track]) -> list[MatchResult]:
        """Score every candidate, best first. Ties keep search order."""
        results = [self.evaluate(original, c) for c in candidates]
        return sorted(results, key=lambda r: r.score, reverse=True)

    def best_match(
        self, original: Track, candidates: Sequence[Track]
    ) -> MatchResult | None:
        """Pick the highest scoring candidate.

        Args:
            original: Track being replaced.
            candidates: Search results in provider order.

        Returns:
            The best result, or None if there are no candidates or the best
            one scores below the threshold.
        """
        best: MatchResult | None = None
        for candidate in candidates:
            result = self.evaluate(original, candidate)
            if best is None or result.score > best.score:
                best = result

        if best is None:
            return None
        if best.score < self._threshold:
            logger.debug(
                "Best candidate '%s' by %s scored %.1f, below threshold %.1f",
                best.candidate.title,
                best.candidate.artist,
                best.score,
                self._threshold,
            )
            return None
        return best
