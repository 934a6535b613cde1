from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from pattern_categorizer.models import CategoryRule, RegexPattern, Transaction, WordlistPattern


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    def factory(**overrides: Any) -> Transaction:
        values: dict[str, Any] = {
            "id": "txn-1",
            "date": datetime(2024, 1, 15),
            "payee": "McDonald's",
            "description": "Fast food purchase",
            "amount": -15.50,
            "currency": "USD",
            "type": "debit",
            "account_number": "ACC-001",
            "transaction_type": "CARD",
            "archive_id": "ARCH-001",
        }
        values.update(overrides)
        return Transaction(**values)

    return factory


@pytest.fixture
def wordlist() -> Callable[..., WordlistPattern]:
    def factory(*words: str, field: str = "payee", weight: float = 10, **overrides: Any) -> WordlistPattern:
        values: dict[str, Any] = {"fields": [field], "words": list(words), "weight": weight}
        values.update(overrides)
        return WordlistPattern(**values)

    return factory


@pytest.fixture
def regex() -> Callable[..., RegexPattern]:
    def factory(expression: str, flags: str = "", field: str = "payee", weight: float = 10) -> RegexPattern:
        return RegexPattern(fields=[field], regex=expression, regex_flags=flags, weight=weight)

    return factory


@pytest.fixture
def make_rule() -> Callable[..., CategoryRule]:
    def factory(name: str, *patterns: Any, **overrides: Any) -> CategoryRule:
        values: dict[str, Any] = {"name": name, "patterns": list(patterns)}
        values.update(overrides)
        return CategoryRule(**values)

    return factory
