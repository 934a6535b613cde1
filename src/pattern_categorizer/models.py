import operator
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

TransactionField = Literal[
    "payee",
    "description",
    "account_number",
    "transaction_type",
    "currency",
    "archive_id",
]
PatternLogic = Literal["AND", "OR"]
RuleType = Literal["income", "expense"]
TransactionType = Literal["debit", "credit"]
AmountOperator = Literal["lt", "lte", "eq", "gte", "gt"]

DEFAULT_FIELDS: tuple[TransactionField, ...] = ("payee",)

_AMOUNT_OPERATORS = {
    "lt": operator.lt,
    "lte": operator.le,
    "eq": operator.eq,
    "gte": operator.ge,
    "gt": operator.gt,
}


class Transaction(BaseModel):
    id: str
    date: datetime
    payee: str | None = ""
    description: str | None = ""
    amount: float = 0.0
    currency: str = "EUR"
    type: TransactionType = "debit"
    category: str | None = None
    category_confidence: float | None = Field(default=None, ge=0, le=100)
    manually_edited: bool = False
    archive_id: str | None = None
    account_number: str | None = None
    transaction_type: str | None = None


class PatternWord(BaseModel):
    text: str
    negated: bool = False


class AmountCondition(BaseModel):
    operator: AmountOperator
    value: float

    def holds(self, amount: float) -> bool:
        return _AMOUNT_OPERATORS[self.operator](amount, self.value)


def needs_migration(raw: dict[str, Any]) -> bool:
    """Old patterns carry a single ``field`` instead of a ``fields`` list."""
    return raw.get("field") is not None and not raw.get("fields")


def migrate_pattern(raw: dict[str, Any]) -> dict[str, Any]:
    if "fields" in raw and raw["fields"] is not None:
        migrated = dict(raw)
        migrated.pop("field", None)
        return migrated
    migrated = dict(raw)
    field = migrated.pop("field", None)
    migrated["fields"] = [field] if field else list(DEFAULT_FIELDS)
    return migrated


class PatternBase(BaseModel):
    fields: list[TransactionField] = Field(default_factory=lambda: list(DEFAULT_FIELDS))
    weight: float = Field(gt=0)
    amount_condition: AmountCondition | None = None

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_field(cls, data: Any) -> Any:
        if isinstance(data, dict) and (needs_migration(data) or data.get("fields") is None):
            return migrate_pattern(data)
        return data


class WordlistPattern(PatternBase):
    match_type: Literal["wordlist"] = "wordlist"
    words: list[PatternWord] = Field(default_factory=list)
    case_sensitive: bool = False

    @field_validator("words", mode="before")
    @classmethod
    def _coerce_words(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [{"text": item} if isinstance(item, str) else item for item in value]
        return value

    @property
    def positive_words(self) -> list[PatternWord]:
        return [word for word in self.words if not word.negated]

    @property
    def negated_words(self) -> list[PatternWord]:
        return [word for word in self.words if word.negated]


class RegexPattern(PatternBase):
    match_type: Literal["regex"] = "regex"
    regex: str = ""
    regex_flags: str = ""


Pattern = Annotated[WordlistPattern | RegexPattern, Field(discriminator="match_type")]


class CategoryRule(BaseModel):
    name: str
    patterns: list[Pattern] = Field(default_factory=list)
    pattern_logic: PatternLogic = "OR"
    priority: int = Field(default=0, ge=0)
    type: RuleType = "expense"
    id: str | None = None
    created_at: datetime | None = None
    is_default: bool = False


class CategorizationResult(BaseModel):
    category: str
    confidence: float  # raw matched weight, clamped to 0-100
    score: float
    raw_score: float
    rule_id: str | None = None


class RecategorizeResult(BaseModel):
    updated: list[Transaction]
    count: int
