"""Heuristics that seed new rules from a transaction's raw text."""
import re

from pattern_categorizer.models import TransactionField, WordlistPattern

MIN_TOKEN_LENGTH = 3
MAX_SUGGESTIONS = 3
SHORT_TEXT_LENGTH = 50

_TOKEN_SPLIT = re.compile(r"[\s,;:\-_/\\]+")
_DIGITS_ONLY = re.compile(r"^\d+$")
_HAS_LETTER = re.compile(r"[^\W\d_]")

# (exclusive upper length bound, weight); anything longer gets the last weight
_LENGTH_BANDS = ((5, 2), (10, 3), (20, 5), (30, 7))
_LONG_PATTERN_WEIGHT = 9
MAX_WORD_BONUS = 3


def _is_noise(token: str) -> bool:
    return bool(_DIGITS_ONLY.match(token)) or not _HAS_LETTER.search(token)


def _is_meaningful(token: str) -> bool:
    return len(token) >= MIN_TOKEN_LENGTH and not _is_noise(token)


def extract_pattern_suggestions(text: str) -> list[str]:
    """Up to three candidates of increasing specificity.

    The first meaningful token (3+ characters, not only digits or
    punctuation) anchors the suggestions; the longer ones extend it with the
    tokens that follow, skipping pure numbers and punctuation:

    >>> extract_pattern_suggestions("Monese EU SA 1050 Ixelles")
    ['Monese', 'Monese EU', 'Monese EU SA']
    """
    if not text or not text.strip():
        return []

    cleaned = text.strip()
    parts = [part for part in _TOKEN_SPLIT.split(cleaned) if part]

    anchor = next((index for index, part in enumerate(parts) if _is_meaningful(part)), None)
    if anchor is None:
        fallback = next((part for part in parts if len(part) >= MIN_TOKEN_LENGTH), None)
        return [fallback] if fallback else []

    tokens = [parts[anchor]] + [part for part in parts[anchor + 1:] if not _is_noise(part)]

    suggestions: list[str] = []
    for size in range(1, MAX_SUGGESTIONS + 1):
        if size <= len(tokens):
            suggestions.append(" ".join(tokens[:size]))
    if len(suggestions) < MAX_SUGGESTIONS and len(cleaned) <= SHORT_TEXT_LENGTH:
        suggestions.append(cleaned)

    return list(dict.fromkeys(suggestions))


def calculate_pattern_weight(pattern: str) -> int:
    """Weight 1-10; longer, multi-word patterns are less likely to misfire."""
    stripped = pattern.strip()
    length = len(stripped)
    word_count = len(stripped.split()) if stripped else 1

    weight = _LONG_PATTERN_WEIGHT
    for upper, band_weight in _LENGTH_BANDS:
        if length <= upper:
            weight = band_weight
            break

    weight += min(word_count - 1, MAX_WORD_BONUS)
    return max(1, min(10, weight))


def suggest_pattern(text: str, fields: list[TransactionField] | None = None) -> WordlistPattern:
    return WordlistPattern(
        fields=fields or ["payee"],
        words=[text.strip()],
        weight=calculate_pattern_weight(text),
    )
