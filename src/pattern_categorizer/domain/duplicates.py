"""Import-time duplicate detection.

The bank-issued ``archive_id`` is the primary key. Only records without one
fall back to the composite ``date_amount_payee`` key.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timezone

from pattern_categorizer.logger import get_logger
from pattern_categorizer.matching.conversion import normalize_text
from pattern_categorizer.models import Transaction

logger = get_logger(__name__)


@dataclass(frozen=True)
class DuplicatePartition:
    fresh: list[Transaction] = field(default_factory=list)
    duplicates: list[Transaction] = field(default_factory=list)


def composite_key(transaction: Transaction) -> str:
    """``YYYY-MM-DD_amount_payee``; aware dates use their UTC calendar day."""
    moment = transaction.date
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    # -0.0 is falsy, so it renders as "0.00".
    amount = transaction.amount or 0.0
    return f"{moment.date().isoformat()}_{amount:.2f}_{normalize_text(transaction.payee or '')}"


def partition(
    new_transactions: Sequence[Transaction],
    existing_archive_ids: Iterable[str],
    existing: Iterable[Transaction] = (),
) -> DuplicatePartition:
    """Split an import into records to categorize and records already known.

    ``existing`` supplies the stored transactions for the composite
    fallback. A record repeated inside the same import is a duplicate of
    its first occurrence.
    """
    known_ids = {archive_id for archive_id in existing_archive_ids if archive_id}
    known_keys = {composite_key(transaction) for transaction in existing}

    result = DuplicatePartition()
    for transaction in new_transactions:
        if transaction.archive_id:
            is_duplicate = transaction.archive_id in known_ids
            known_ids.add(transaction.archive_id)
        else:
            key = composite_key(transaction)
            is_duplicate = key in known_keys
            known_keys.add(key)

        if is_duplicate:
            result.duplicates.append(transaction)
        else:
            result.fresh.append(transaction)

    logger.info(
        "[IMPORT] %s new transaction(s), %s duplicate(s) skipped.",
        len(result.fresh),
        len(result.duplicates),
    )
    return result
