from collections.abc import Sequence

from pattern_categorizer.logger import get_logger
from pattern_categorizer.matching.matcher import matches_on_fields
from pattern_categorizer.models import (
    CategoryRule,
    Pattern,
    Transaction,
    TransactionField,
)
from pattern_categorizer.scoring.scorer import raw_score

logger = get_logger(__name__)


def detect_conflicts(
    candidate_pattern: Pattern,
    candidate_field: TransactionField | None,
    sample_transaction: Transaction,
    existing_rules: Sequence[CategoryRule],
    *,
    target_rule: str | None = None,
) -> list[str]:
    """Names of other rules that would also fire on ``sample_transaction``.

    Advisory only: the check covers the single sample, not the whole
    transaction history, and never blocks a commit. Only existing patterns
    that look at the same field are considered; ``target_rule`` (the rule the
    candidate is being added to) is never reported. Returns an empty list
    when the candidate itself does not match the sample.
    """
    fields: list[TransactionField] = (
        [candidate_field] if candidate_field is not None else list(candidate_pattern.fields)
    )
    candidate = candidate_pattern.model_copy(update={"fields": fields})
    synthetic = CategoryRule(name=target_rule or "<candidate>", patterns=[candidate])
    if raw_score(sample_transaction, synthetic) <= 0:
        logger.debug("[CONFLICT] Candidate pattern does not match sample %s.", sample_transaction.id)
        return []

    conflicts: list[str] = []
    for rule in existing_rules:
        if target_rule is not None and rule.name == target_rule:
            continue
        if rule.name in conflicts:
            continue
        for pattern in rule.patterns:
            shared = [field for field in pattern.fields if field in fields]
            if shared and matches_on_fields(sample_transaction, pattern, shared):
                conflicts.append(rule.name)
                break

    if conflicts:
        logger.info(
            "[CONFLICT] Candidate pattern overlaps with %s rule(s): %s",
            len(conflicts),
            ", ".join(conflicts),
        )
    return conflicts
