from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from pattern_categorizer.api.dependencies import get_engine, get_recategorization_manager
from pattern_categorizer.api.schemas import BatchRequest, CategorizeRequest, CategorizeResponse
from pattern_categorizer.core import settings
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.logger import get_logger
from pattern_categorizer.models import RecategorizeResult, Transaction
from pattern_categorizer.services.recategorization import RecategorizationManager

logger = get_logger(__name__)

router = APIRouter()


@router.post("/categorize", response_model=CategorizeResponse)
async def categorize_transaction(
    req: CategorizeRequest,
    engine: Annotated[CategorizationEngine, Depends(get_engine)],
) -> CategorizeResponse:
    return CategorizeResponse(
        result=engine.categorize_one(req.transaction, req.rules, type_filter=req.type_filter),
    )


@router.post("/categorize/batch", response_model=list[Transaction])
async def categorize_batch(
    req: BatchRequest,
    engine: Annotated[CategorizationEngine, Depends(get_engine)],
) -> list[Transaction]:
    # Dry-run preview: nothing is persisted, the caller decides what to keep.
    return engine.categorize_batch(req.transactions, req.rules, type_filter=req.type_filter)


@router.post("/recategorize", response_model=RecategorizeResult)
async def recategorize_all(
    req: BatchRequest,
    manager: Annotated[RecategorizationManager, Depends(get_recategorization_manager)],
) -> RecategorizeResult:
    return await manager.run(req.transactions, req.rules)


@router.post("/recategorize-stream")
async def recategorize_stream(
    req: BatchRequest,
    manager: Annotated[RecategorizationManager, Depends(get_recategorization_manager)],
) -> StreamingResponse:
    # stream() claims the manager here, so an overlapping request gets 409.
    return StreamingResponse(
        manager.stream(req.transactions, req.rules),
        media_type="text/event-stream",
        headers=settings.SSE_HEADERS,
    )


@router.post("/recategorize-cancel")
async def cancel_recategorization(
    manager: Annotated[RecategorizationManager, Depends(get_recategorization_manager)],
) -> dict[str, str]:
    if manager.request_cancel():
        logger.info("[RECATEGORIZE] Cancel requested by user.")
        return {"status": "cancelling"}
    return {"status": "idle"}


@router.get("/recategorize-status")
async def get_recategorization_status(
    manager: Annotated[RecategorizationManager, Depends(get_recategorization_manager)],
) -> dict:
    return manager.get_status()
