"""Recall scoring.

Positional comparison of a free-text attempt against the reference words:
position i of the attempt is compared with position i of the reference, with
an edit-distance tolerance that grows with word length. There is no
re-alignment, so one missing or extra word early on shifts every later
position.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Discrepancy, DiscrepancyKind, ScoreResult
from .utils_text import allowed_tolerance, levenshtein_distance, normalize_token, tokenize


def _tokens_match(expected: str, actual: str) -> bool:
    if expected == actual:
        return True
    longest = max(len(expected), len(actual))
    return levenshtein_distance(expected, actual) <= allowed_tolerance(longest)


def score(attempt_text, reference_tokens: Iterable[str]) -> ScoreResult:
    reference_tokens = list(reference_tokens or [])
    ref = [t for t in (normalize_token(r) for r in reference_tokens) if t]
    att = list(tokenize(attempt_text))

    matched = 0
    discrepancies: List[Discrepancy] = []
    for i in range(max(len(ref), len(att))):
        expected = ref[i] if i < len(ref) else None
        actual = att[i] if i < len(att) else None
        if actual is None:
            discrepancies.append(Discrepancy(DiscrepancyKind.MISSING, i, expected=expected))
        elif expected is None:
            discrepancies.append(Discrepancy(DiscrepancyKind.EXTRA, i, actual=actual))
        elif _tokens_match(expected, actual):
            matched += 1
        else:
            discrepancies.append(Discrepancy(DiscrepancyKind.MISMATCH, i, expected=expected, actual=actual))

    return ScoreResult(
        matched=matched,
        total=len(ref),
        discrepancies=tuple(discrepancies),
        reference_text=" ".join(str(r) for r in reference_tokens),
    )


def clamp_last_n(last_n, sentence_count: int) -> int:
    try:
        n = int(last_n)
    except (TypeError, ValueError):
        n = 1
    return max(1, min(n, sentence_count))


class RecallScorer:
    """Scores attempts against the story currently loaded in a player."""

    def __init__(self, player):
        self.player = player

    def score_full(self, attempt_text) -> Optional[ScoreResult]:
        sentences = self.player.sentences
        if not sentences:
            return None
        return score(attempt_text, [w for s in sentences for w in s])

    def score_partial(self, attempt_text, last_n) -> Optional[ScoreResult]:
        sentences = self.player.sentences
        if not sentences:
            return None
        n = clamp_last_n(last_n, len(sentences))
        subset = sentences[len(sentences) - n:]
        return score(attempt_text, [w for s in subset for w in s])
