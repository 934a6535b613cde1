"""Conversions between wordlist and regex pattern text."""
import re

_SPECIAL_CHARS = re.compile(r"([.*+?^${}()|\[\]\\])")
_ESCAPED_CHAR = re.compile(r"\\([.*+?^${}()|\[\]\\])")
_WORDLIST_REGEX = re.compile(r"^\\b\(\?:([^)]+)\)\\b$")
_CASE_INSENSITIVE_PREFIX = "(?i)"


def normalize_text(text: str) -> str:
    return text.strip().lower()


def escape_regex(text: str) -> str:
    return _SPECIAL_CHARS.sub(r"\\\1", text)


def _unescape(text: str) -> str:
    return _ESCAPED_CHAR.sub(r"\1", text)


def wordlist_to_regex(words: list[str], case_sensitive: bool = False) -> str:
    """Build a whole-word alternation, e.g. ``(?i)\\b(?:STORE|SHOP)\\b``."""
    if not words:
        return ""
    pattern = r"\b(?:" + "|".join(escape_regex(word) for word in words) + r")\b"
    return pattern if case_sensitive else _CASE_INSENSITIVE_PREFIX + pattern


def regex_to_wordlist(regex: str) -> list[str] | None:
    """Inverse of wordlist_to_regex; None when the regex is anything richer."""
    cleaned = regex[len(_CASE_INSENSITIVE_PREFIX):] if regex.startswith(_CASE_INSENSITIVE_PREFIX) else regex
    match = _WORDLIST_REGEX.match(cleaned)
    if not match:
        return None

    words = match.group(1).split("|")
    for word in words:
        if escape_regex(_unescape(word)) != word:
            return None
    return [_unescape(word) for word in words]
