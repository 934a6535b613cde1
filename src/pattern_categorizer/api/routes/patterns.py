from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from pattern_categorizer.api.dependencies import get_engine
from pattern_categorizer.api.schemas import (
    CommitPatternsRequest,
    CommitPatternsResponse,
    ConflictRequest,
    ConflictResponse,
    ConvertRequest,
    ConvertResponse,
    MergeRequest,
    SuggestionRequest,
    SuggestionResponse,
    WeightRequest,
)
from pattern_categorizer.core.errors import RuleNotFoundError
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.matching.conversion import regex_to_wordlist, wordlist_to_regex
from pattern_categorizer.models import Pattern
from pattern_categorizer.services.authoring import (
    build_wordlist_patterns,
    commit_patterns,
    merge_patterns,
)
from pattern_categorizer.services.conflicts import detect_conflicts
from pattern_categorizer.services.suggestions import (
    calculate_pattern_weight,
    extract_pattern_suggestions,
)

router = APIRouter(prefix="/patterns")


@router.post("/conflicts", response_model=ConflictResponse)
async def check_conflicts(req: ConflictRequest) -> ConflictResponse:
    return ConflictResponse(conflicts=detect_conflicts(
        req.pattern,
        req.field,
        req.transaction,
        req.rules,
        target_rule=req.target_rule,
    ))


@router.post("/suggestions", response_model=SuggestionResponse)
async def suggest_patterns(req: SuggestionRequest) -> SuggestionResponse:
    suggestions = extract_pattern_suggestions(req.text)
    return SuggestionResponse(
        suggestions=suggestions,
        weights={suggestion: calculate_pattern_weight(suggestion) for suggestion in suggestions},
    )


@router.post("/weight")
async def pattern_weight(req: WeightRequest) -> dict[str, int]:
    return {"weight": calculate_pattern_weight(req.pattern)}


@router.post("/merge", response_model=list[Pattern])
async def merge(req: MergeRequest) -> list[Pattern]:
    return merge_patterns(req.existing, req.new)


@router.post("/commit", response_model=CommitPatternsResponse)
async def commit(
    req: CommitPatternsRequest,
    engine: Annotated[CategorizationEngine, Depends(get_engine)],
) -> CommitPatternsResponse:
    weight = req.weight or max(calculate_pattern_weight(text) for text in req.texts)
    try:
        committed = commit_patterns(
            engine,
            transaction_id=req.transaction_id,
            category=req.category,
            new_patterns=build_wordlist_patterns(req.texts, req.fields, weight),
            rules=req.rules,
            transactions=req.transactions,
        )
    except RuleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return CommitPatternsResponse(
        rules=committed.rules,
        updated=committed.result.updated,
        count=committed.result.count,
    )



@router.post("/convert", response_model=ConvertResponse)
async def convert(req: ConvertRequest) -> ConvertResponse:
    if req.words is not None:
        return ConvertResponse(regex=wordlist_to_regex(req.words, case_sensitive=req.case_sensitive))
    if req.regex is None:
        raise HTTPException(status_code=422, detail="Provide either words or regex")
    words = regex_to_wordlist(req.regex)
    if words is None:
        raise HTTPException(status_code=422, detail="Regex is not a plain word alternation")
    return ConvertResponse(words=words)
