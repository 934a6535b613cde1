from fastapi import APIRouter

from pattern_categorizer.api.schemas import DuplicateRequest, DuplicateResponse
from pattern_categorizer.domain import duplicates

router = APIRouter()


@router.post("/duplicates", response_model=DuplicateResponse)
async def find_duplicates(req: DuplicateRequest) -> DuplicateResponse:
    # Only ``fresh`` should be forwarded to categorization.
    split = duplicates.partition(req.transactions, req.existing_archive_ids, req.existing)
    return DuplicateResponse(fresh=split.fresh, duplicates=split.duplicates)
