from collections.abc import Sequence
from dataclasses import dataclass

from pattern_categorizer.core.errors import RuleNotFoundError
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.logger import get_logger
from pattern_categorizer.matching.conversion import normalize_text
from pattern_categorizer.matching.matcher import matches
from pattern_categorizer.models import (
    CategoryRule,
    Pattern,
    PatternWord,
    RecategorizeResult,
    Transaction,
    TransactionField,
    WordlistPattern,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class PatternCommit:
    rules: list[CategoryRule]
    result: RecategorizeResult


def _dedupe_words(words: Sequence[PatternWord]) -> list[PatternWord]:
    seen: dict[str, PatternWord] = {}
    for word in words:
        seen.setdefault(normalize_text(word.text), word)
    return list(seen.values())


def merge_patterns(existing: Sequence[Pattern], new: Sequence[Pattern]) -> list[Pattern]:
    """Fold new patterns into a rule's pattern list.

    A new wordlist pattern whose field set equals an existing wordlist
    pattern's is merged into it (words de-duplicated case-insensitively,
    higher weight kept). Everything else is appended.
    """
    merged: list[Pattern] = list(existing)
    for pattern in new:
        target = next(
            (
                index for index, current in enumerate(merged)
                if isinstance(current, WordlistPattern)
                and isinstance(pattern, WordlistPattern)
                and sorted(current.fields) == sorted(pattern.fields)
            ),
            None,
        )
        if target is None:
            merged.append(pattern)
            continue
        current = merged[target]
        merged[target] = current.model_copy(update={
            "words": _dedupe_words([*current.words, *pattern.words]),
            "weight": max(current.weight, pattern.weight),
        })
    return merged


def build_wordlist_patterns(
    texts: Sequence[str],
    fields: Sequence[TransactionField],
    weight: float,
) -> list[Pattern]:
    """One single-word, case-insensitive pattern per (field, text) pair."""
    return [
        WordlistPattern(fields=[field], words=[text], weight=weight)
        for field in fields
        for text in texts
    ]


def count_affected(transactions: Sequence[Transaction], patterns: Sequence[Pattern]) -> int:
    """How many auto-managed transactions any of ``patterns`` would hit."""
    return sum(
        1 for transaction in transactions
        if not transaction.manually_edited
        and any(matches(transaction, pattern) for pattern in patterns)
    )


def commit_patterns(
    engine: CategorizationEngine,
    *,
    transaction_id: str,
    category: str,
    new_patterns: Sequence[Pattern],
    rules: Sequence[CategoryRule],
    transactions: Sequence[Transaction],
) -> PatternCommit:
    """Add patterns to ``category`` and hand the source transaction back to the rules.

    The source transaction is assigned ``category`` and its manual-edit flag
    is cleared, then every auto-managed transaction is re-categorized
    against the updated rules. Inputs are not modified; the caller persists
    the returned rules and transactions.
    """
    rule_index = next((index for index, rule in enumerate(rules) if rule.name == category), None)
    if rule_index is None:
        raise RuleNotFoundError(f"Category rule '{category}' not found")

    updated_rules = list(rules)
    target = updated_rules[rule_index]
    updated_rules[rule_index] = target.model_copy(update={
        "patterns": merge_patterns(target.patterns, new_patterns),
    })

    released = [
        transaction.model_copy(update={"category": category, "manually_edited": False})
        if transaction.id == transaction_id
        else transaction
        for transaction in transactions
    ]
    logger.info(
        "[AUTHOR] Added %s pattern(s) to '%s' from transaction %s.",
        len(new_patterns),
        category,
        transaction_id,
    )
    return PatternCommit(rules=updated_rules, result=engine.recategorize_all(released, updated_rules))
