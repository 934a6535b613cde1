from pydantic import BaseModel, Field

from pattern_categorizer.models import (
    CategorizationResult,
    CategoryRule,
    Pattern,
    Transaction,
    TransactionField,
)


class CategorizeRequest(BaseModel):
    transaction: Transaction
    rules: list[CategoryRule]
    type_filter: bool | None = None


class CategorizeResponse(BaseModel):
    result: CategorizationResult | None


class BatchRequest(BaseModel):
    transactions: list[Transaction]
    rules: list[CategoryRule]
    type_filter: bool | None = None


class ConflictRequest(BaseModel):
    pattern: Pattern
    field: TransactionField | None = None
    transaction: Transaction
    rules: list[CategoryRule]
    target_rule: str | None = None


class ConflictResponse(BaseModel):
    conflicts: list[str]


class SuggestionRequest(BaseModel):
    text: str


class SuggestionResponse(BaseModel):
    suggestions: list[str]
    weights: dict[str, int]


class WeightRequest(BaseModel):
    pattern: str


class MergeRequest(BaseModel):
    existing: list[Pattern]
    new: list[Pattern]


class CommitPatternsRequest(BaseModel):
    transaction_id: str
    category: str
    texts: list[str] = Field(min_length=1)
    fields: list[TransactionField] = Field(default_factory=lambda: ["payee"], min_length=1)
    weight: float | None = Field(default=None, gt=0)
    rules: list[CategoryRule]
    transactions: list[Transaction]


class CommitPatternsResponse(BaseModel):
    rules: list[CategoryRule]
    updated: list[Transaction]
    count: int


class DuplicateRequest(BaseModel):
    transactions: list[Transaction]
    existing_archive_ids: list[str] = Field(default_factory=list)
    existing: list[Transaction] = Field(default_factory=list)


class DuplicateResponse(BaseModel):
    fresh: list[Transaction]
    duplicates: list[Transaction]


class ConvertRequest(BaseModel):
    words: list[str] | None = None
    regex: str | None = None
    case_sensitive: bool = False


class ConvertResponse(BaseModel):
    words: list[str] | None = None
    regex: str | None = None
