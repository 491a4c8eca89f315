"""Pydantic models for search results and the HTTP search response."""

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A single merged search hit.

    distance is the best (lowest) cosine distance of the query to either the
    primary or the translated-variant embedding of the document.
    """

    document_id: int
    file_path: str
    title: str | None = None
    content_snippet: str
    distance: float


class SearchResultItem(BaseModel):
    """A single hit as returned by the HTTP API."""

    filePath: str
    title: str | None = None
    snippet: str
    distance: float
    score: float


class SearchResponse(BaseModel):
    """Response payload of GET /api/search."""

    query: str
    limit: int
    maxDistance: float | None = None
    results: list[SearchResultItem] = Field(default_factory=list)
