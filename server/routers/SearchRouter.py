from fastapi import APIRouter, Depends, Query, Request

from server.dependencies.auth import verify_api_key
from shared.models.errors import ValidationError
from shared.models.search import SearchResponse, SearchResultItem

MAX_LIMIT = 100

router = APIRouter(prefix="/api", tags=["search"])


@router.get("/search")
async def search_documents(
    request: Request,
    q: str = Query("", description="Free-text query"),
    limit: int = Query(5, description="Maximum number of results (1-100)"),
    maxDistance: float | None = Query(None, description="Only return results with a smaller cosine distance"),
    _: None = Depends(verify_api_key),
) -> SearchResponse:
    """Execute a bilingual semantic search over the imported documents.

    Args:
        request (Request): FastAPI request (provides app.state.search_service).
        q (str): The free-text query.
        limit (int): Maximum number of results.
        maxDistance (float | None): Optional cosine distance cutoff.
        _ (None): Auth dependency result (unused).

    Returns:
        SearchResponse: Ranked hits with score = 1 - distance.
    """
    if not q.strip():
        raise ValidationError("Query parameter 'q' is required.")
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}.")

    search_service = request.app.state.search_service
    results = await search_service.do_search(q, limit=limit, max_distance=maxDistance)
    return SearchResponse(
        query=q,
        limit=limit,
        maxDistance=maxDistance,
        results=[
            SearchResultItem(
                filePath=result.file_path,
                title=result.title,
                snippet=result.content_snippet,
                distance=result.distance,
                score=1 - result.distance,
            )
            for result in results
        ],
    )
