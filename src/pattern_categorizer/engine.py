import threading
from collections.abc import Sequence

from pattern_categorizer.core import settings
from pattern_categorizer.logger import get_logger
from pattern_categorizer.models import (
    CategorizationResult,
    CategoryRule,
    RecategorizeResult,
    Transaction,
)
from pattern_categorizer.scoring.scorer import RuleScore, score_rules

logger = get_logger(__name__)

MAX_CONFIDENCE = 100.0

_RULE_TYPE_FOR_TRANSACTION = {"debit": "expense", "credit": "income"}


def _category_changed(before: Transaction, after: Transaction) -> bool:
    return (
        before.category != after.category
        or before.category_confidence != after.category_confidence
    )


class CategorizationEngine:
    """Picks the best-scoring rule for transactions.

    Rules are never read from ambient state: every call receives the rule
    list it should use, and that list is snapshotted for the whole pass.

    Ties on the final score are resolved by ``tie_break``:
    ``name`` (case-folded rule name, ascending), ``order`` (first rule in
    the supplied list) or ``created`` (oldest ``created_at``, undated rules
    last). Every policy falls back to list order.
    """

    def __init__(self, tie_break: str = settings.DEFAULT_TIE_BREAK, type_filter: bool = False) -> None:
        if tie_break not in settings.TIE_BREAK_CHOICES:
            raise ValueError(
                f"Unknown tie-break policy '{tie_break}'. "
                f"Expected one of: {', '.join(settings.TIE_BREAK_CHOICES)}"
            )
        self.tie_break = tie_break
        self.type_filter = type_filter

    @classmethod
    def from_settings(cls) -> "CategorizationEngine":
        return cls(tie_break=settings.get_tie_break(), type_filter=settings.get_type_filter())

    def _tie_break_key(self, candidate: RuleScore) -> tuple:
        if self.tie_break == "name":
            return (-candidate.final, candidate.rule.name.casefold(), candidate.index)
        if self.tie_break == "created":
            created = candidate.rule.created_at
            return (
                -candidate.final,
                created is None,
                created.timestamp() if created is not None else 0.0,
                candidate.index,
            )
        return (-candidate.final, candidate.index)

    def _eligible_rules(
        self,
        transaction: Transaction,
        rules: Sequence[CategoryRule],
        type_filter: bool | None,
    ) -> Sequence[CategoryRule]:
        use_filter = self.type_filter if type_filter is None else type_filter
        if not use_filter:
            return rules
        wanted = _RULE_TYPE_FOR_TRANSACTION[transaction.type]
        return [rule for rule in rules if rule.type == wanted]

    def categorize_one(
        self,
        transaction: Transaction,
        rules: Sequence[CategoryRule],
        *,
        type_filter: bool | None = None,
    ) -> CategorizationResult | None:
        candidates = score_rules(transaction, self._eligible_rules(transaction, rules, type_filter))
        if not candidates:
            return None

        winner = min(candidates, key=self._tie_break_key)
        logger.debug(
            "[CATEGORIZE] %s -> '%s' (score %.2f, %s candidate(s))",
            transaction.id,
            winner.rule.name,
            winner.final,
            len(candidates),
        )
        return CategorizationResult(
            category=winner.rule.name,
            confidence=min(MAX_CONFIDENCE, max(0.0, winner.raw)),
            score=winner.final,
            raw_score=winner.raw,
            rule_id=winner.rule.id,
        )

    def apply_result(self, transaction: Transaction, result: CategorizationResult | None) -> Transaction:
        return transaction.model_copy(update={
            "category": result.category if result else None,
            "category_confidence": result.confidence if result else None,
            "manually_edited": False,
        })

    def categorize_batch(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        *,
        type_filter: bool | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Transaction]:
        """Categorize copies of ``transactions``; inputs are left untouched.

        When ``cancel`` is set the batch stops before the next transaction
        and only the already computed prefix is returned.
        """
        snapshot = tuple(rules)
        categorized: list[Transaction] = []
        for transaction in transactions:
            if cancel is not None and cancel.is_set():
                logger.info(
                    "[CATEGORIZE] Batch cancelled after %s of %s transaction(s).",
                    len(categorized),
                    len(transactions),
                )
                break
            result = self.categorize_one(transaction, snapshot, type_filter=type_filter)
            categorized.append(self.apply_result(transaction, result))
        return categorized

    def recategorize_all(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        *,
        type_filter: bool | None = None,
        cancel: threading.Event | None = None,
    ) -> RecategorizeResult:
        """Re-run categorization on everything not manually edited.

        Manually edited transactions come back verbatim. ``count`` is the
        number of transactions whose category or confidence changed, so a
        second pass over the same rules reports 0. Transactions not reached
        before a cancellation are returned unchanged.
        """
        auto_positions = [
            position for position, transaction in enumerate(transactions)
            if not transaction.manually_edited
        ]
        batch = self.categorize_batch(
            [transactions[position] for position in auto_positions],
            rules,
            type_filter=type_filter,
            cancel=cancel,
        )

        updated = list(transactions)
        count = 0
        for position, categorized in zip(auto_positions, batch):
            if _category_changed(updated[position], categorized):
                count += 1
            updated[position] = categorized

        logger.info(
            "[RECATEGORIZE] %s transaction(s) re-scored, %s changed, %s manual edit(s) kept.",
            len(batch),
            count,
            len(transactions) - len(auto_positions),
        )
        return RecategorizeResult(updated=updated, count=count)

    def apply_manual_category(self, transaction: Transaction, category: str | None) -> Transaction:
        """Record a user-asserted category; bulk passes will leave it alone."""
        return transaction.model_copy(update={
            "category": category,
            "category_confidence": None,
            "manually_edited": True,
        })
