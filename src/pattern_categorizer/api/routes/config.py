from fastapi import APIRouter, HTTPException, Request

from pattern_categorizer.core import configuration

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/config")
async def get_config() -> dict:
    return configuration.build_config_payload()


@router.post("/config")
async def update_config(values: dict[str, str], request: Request) -> dict:
    errors, updates = configuration.apply_config_updates(values)
    if errors:
        raise HTTPException(status_code=422, detail=errors)
    configuration.apply_runtime_updates(request.app, updates)
    return {"status": "saved", "updated": sorted(updates)}
