"""Evaluate a single pattern against a transaction.

Matching never raises for bad input: a malformed regex is logged once and
treated as permanently non-matching, and a missing field reads as "".
"""
import re
from collections.abc import Iterable
from functools import lru_cache

from pattern_categorizer.core import settings
from pattern_categorizer.core.errors import InvalidPatternError
from pattern_categorizer.logger import get_logger
from pattern_categorizer.models import (
    PatternBase,
    PatternWord,
    RegexPattern,
    Transaction,
    TransactionField,
    WordlistPattern,
)

logger = get_logger(__name__)

# "g", "y" and "d" only change iteration state or match indices, which a
# boolean test never sees.
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
    "g": 0,
    "y": 0,
    "d": 0,
}

_SEPARATORS = re.compile(r"[,;.]")
_WHITESPACE = re.compile(r"\s+")


def parse_regex_flags(flags: str) -> int:
    value = 0
    for letter in flags or "":
        if letter not in _REGEX_FLAGS:
            raise InvalidPatternError(f"Unsupported regex flag '{letter}'")
        value |= _REGEX_FLAGS[letter]
    return value


def validate_regex(regex: str, flags: str = "") -> None:
    """Raise InvalidPatternError if the regex cannot be compiled."""
    try:
        re.compile(regex or "", parse_regex_flags(flags))
    except re.error as exc:
        raise InvalidPatternError(f"Invalid regex '{regex}': {exc}") from exc


@lru_cache(maxsize=settings.REGEX_CACHE_SIZE)
def compile_regex(regex: str, flags: str = "") -> re.Pattern[str] | None:
    try:
        validate_regex(regex, flags)
    except InvalidPatternError as exc:
        logger.warning("[MATCH] %s (flags '%s'); pattern will never match.", exc, flags)
        return None
    return re.compile(regex or "", parse_regex_flags(flags))


def get_field_value(transaction: Transaction, field: str) -> str:
    value = getattr(transaction, field, None)
    if value is None:
        return ""
    return str(value)


def _normalize_separators(text: str) -> str:
    return _WHITESPACE.sub(" ", _SEPARATORS.sub(" ", text)).strip()


def _prepare(word: PatternWord, case_sensitive: bool) -> str:
    return word.text if case_sensitive else word.text.lower()


def _contains_word(search_text: str, word: str) -> bool:
    if word in search_text:
        return True
    # "Selver AS selver.ee" should still hit "Selver AS, selver.ee"
    return _normalize_separators(word) in _normalize_separators(search_text)


def _matches_wordlist(value: str, pattern: WordlistPattern) -> bool:
    if not pattern.words:
        return False

    search_text = value if pattern.case_sensitive else value.lower()

    positive = pattern.positive_words
    if positive and not any(
        _contains_word(search_text, _prepare(word, pattern.case_sensitive)) for word in positive
    ):
        return False

    return not any(
        _prepare(word, pattern.case_sensitive) in search_text for word in pattern.negated_words
    )


def _matches_regex(value: str, pattern: RegexPattern) -> bool:
    compiled = compile_regex(pattern.regex, pattern.regex_flags)
    if compiled is None:
        return False
    return compiled.search(value) is not None


def matches_value(value: str, pattern: PatternBase) -> bool:
    """Test one field's text against the pattern's wordlist or regex."""
    if isinstance(pattern, WordlistPattern):
        return _matches_wordlist(value, pattern)
    if isinstance(pattern, RegexPattern):
        return _matches_regex(value, pattern)
    raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")


def matches_on_fields(
    transaction: Transaction,
    pattern: PatternBase,
    fields: Iterable[TransactionField],
) -> bool:
    if pattern.amount_condition is not None and not pattern.amount_condition.holds(transaction.amount):
        return False
    return any(matches_value(get_field_value(transaction, field), pattern) for field in fields)


def matches(transaction: Transaction, pattern: PatternBase) -> bool:
    """True if any of the pattern's fields match on this transaction."""
    return matches_on_fields(transaction, pattern, pattern.fields)
