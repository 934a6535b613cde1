from fastapi import HTTPException, Request

from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.services.recategorization import RecategorizationManager


def get_engine(request: Request) -> CategorizationEngine:
    engine = getattr(request.app.state, "engine", None)
    if not engine:
        raise HTTPException(status_code=500, detail="Engine not initialized")
    return engine


def get_recategorization_manager(request: Request) -> RecategorizationManager:
    manager = getattr(request.app.state, "recategorization_manager", None)
    if not manager:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return manager
