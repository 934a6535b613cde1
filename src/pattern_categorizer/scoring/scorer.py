from collections.abc import Sequence
from dataclasses import dataclass

from pattern_categorizer.matching.matcher import matches
from pattern_categorizer.models import CategoryRule, Transaction

PRIORITY_STEP = 0.1
# Final scores are rounded so products equal on paper compare equal.
SCORE_PRECISION = 9


@dataclass(frozen=True)
class RuleScore:
    rule: CategoryRule
    index: int  # position in the supplied rule list
    raw: float
    final: float


def priority_multiplier(priority: int) -> float:
    return 1 + priority * PRIORITY_STEP


def raw_score(transaction: Transaction, rule: CategoryRule) -> float:
    """Sum of matched pattern weights, before the priority multiplier.

    AND rules score the full weight sum only when every pattern matches
    (an empty AND rule scores 0). OR rules sum whatever matched.
    """
    if rule.pattern_logic == "AND":
        if not rule.patterns:
            return 0.0
        if not all(matches(transaction, pattern) for pattern in rule.patterns):
            return 0.0
        return float(sum(pattern.weight for pattern in rule.patterns))

    return float(sum(pattern.weight for pattern in rule.patterns if matches(transaction, pattern)))


def final_score(raw: float, priority: int) -> float:
    return round(raw * priority_multiplier(priority), SCORE_PRECISION)


def score(transaction: Transaction, rule: CategoryRule) -> float:
    return final_score(raw_score(transaction, rule), rule.priority)


def score_rules(transaction: Transaction, rules: Sequence[CategoryRule]) -> list[RuleScore]:
    """Score every rule, keeping only those with a positive score."""
    scored: list[RuleScore] = []
    for index, rule in enumerate(rules):
        raw = raw_score(transaction, rule)
        if raw <= 0:
            continue
        scored.append(RuleScore(rule=rule, index=index, raw=raw, final=final_score(raw, rule.priority)))
    return scored
