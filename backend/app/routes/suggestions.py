"""Suggestion routes: ranked phonetic suggestions for a partially typed word."""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from engine import SuggestionStatus

from ..config import MAX_QUERY_LENGTH, RATE_LIMIT_SUGGEST_PER_MINUTE, RATE_LIMIT_WINDOW_SECONDS
from ..rate_limit import check_rate_limit
from ..services.suggestion_service import SuggestionService

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


class SuggestionResponse(BaseModel):
    success: bool
    query: str
    matches: list[str]
    status: SuggestionStatus
    sources: list[str] = []
    error: str | None = None


class AlgorithmStatus(BaseModel):
    algorithm: str
    state: str
    active: bool
    index: str | None = None
    error: str | None = None
    buckets: int | None = None
    words: int | None = None
    word_count: int | None = None


class EngineStatusResponse(BaseModel):
    ready: bool
    algorithms: list[AlgorithmStatus]


def get_service(request: Request) -> SuggestionService:
    service = getattr(request.app.state, "suggestions", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Suggestion engine is not running.")
    return service


_ERRORS = {
    SuggestionStatus.UNAVAILABLE: "No phonetic index is ready.",
    SuggestionStatus.NOT_CONFIGURED: "No phonetic algorithm is configured.",
}


@router.get("", response_model=SuggestionResponse)
async def suggest(
    request: Request,
    q: str = Query(..., description="Partially typed word"),
    limit: int | None = Query(None, ge=1, le=50, description="Maximum number of suggestions"),
    service: SuggestionService = Depends(get_service),
):
    """
    Words that sound like q, closest spelling first.
    An empty match list never means "clear previous suggestions"; status says why it is empty.
    """
    if len(q) > MAX_QUERY_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Query too long (max {MAX_QUERY_LENGTH} characters).",
        )
    client_id = request.client.host if request.client else "anonymous"
    check_rate_limit(client_id, "suggest", RATE_LIMIT_SUGGEST_PER_MINUTE, RATE_LIMIT_WINDOW_SECONDS)
    result = await service.aggregator.suggest(q, limit)
    return SuggestionResponse(
        success=result.ok,
        query=q,
        matches=result.matches,
        status=result.status,
        sources=result.sources,
        error=_ERRORS.get(result.status),
    )


@router.get("/status", response_model=EngineStatusResponse)
async def engine_status(service: SuggestionService = Depends(get_service)):
    """Readiness of every phonetic index (state, size, build error)."""
    algorithms = [AlgorithmStatus(**info) for info in await service.aggregator.status()]
    ready = any(a.active and a.state == "READY" for a in algorithms)
    return EngineStatusResponse(ready=ready, algorithms=algorithms)
