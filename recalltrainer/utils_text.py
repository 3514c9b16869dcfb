import re
from datetime import datetime
from typing import Iterator, Optional

from jiwer import wer as jiwer_wer
from rapidfuzz.distance import Levenshtein

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_WORD = re.compile(r"[^\w]")
_TRAILING_PUNCT = re.compile(r"^(.*?)([.!?,;:]+)$")


def now_iso() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def normalize_token(w: Optional[str]) -> str:
    return _NON_ALNUM.sub("", (w or "").lower())


def tokenize(text) -> Iterator[str]:
    """Yield normalized tokens of `text`, in order.

    Anything that is not a string counts as empty input.
    """
    if not isinstance(text, str):
        return
    for piece in text.split():
        tok = normalize_token(piece)
        if tok:
            yield tok


def levenshtein_distance(a: str, b: str) -> int:
    return Levenshtein.distance(a or "", b or "")


def allowed_tolerance(length: int) -> int:
    if length <= 4:
        return 1
    if length <= 7:
        return 2
    return 3


def clean_word_for_key(w: Optional[str]) -> str:
    """Note key of a displayed word: punctuation dropped, casing kept."""
    return _NON_WORD.sub("", w or "")


def append_note_to_text(original_word: str, desc: str) -> str:
    # "fox." -> "fox (note)."
    m = _TRAILING_PUNCT.match(original_word)
    if m:
        return f"{m.group(1)} ({desc}){m.group(2)}"
    return f"{original_word} ({desc})"


def recall_wer(reference: str, attempt: str) -> float:
    ref = " ".join(tokenize(reference))
    hyp = " ".join(tokenize(attempt))
    if not ref and not hyp:
        return 0.0
    if not ref or not hyp:
        return 1.0
    return float(jiwer_wer(ref, hyp))
