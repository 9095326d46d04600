"""Pydantic models for search requests and responses."""

from typing import Any

from pydantic import BaseModel, Field


class TextSearchQuery(BaseModel):
    """Structured full-text query against a single entity collection."""

    q: str
    entity: str
    filters: dict[str, Any] | None = None
    facets: list[str] | None = None
    query_by: str | None = None
    per_page: int | None = None
    page: int | None = None


class TextSearchResult(BaseModel):
    """Normalized full-text engine response. Hits are flat field maps."""

    hits: list[dict[str, Any]] = []
    found: int = 0
    page: int = 1


class SemanticSearchRequest(BaseModel):
    q: str
    entity: str
    limit: int = Field(default=10, ge=1)


class SemanticHit(BaseModel):
    """A single vector engine match."""

    id: str
    score: float
    payload: dict[str, Any] = {}


class HybridSearchRequest(BaseModel):
    """Incoming hybrid search query. Weights need not sum to 1."""

    q: str
    entity: str
    semantic_weight: float = 0.7
    text_weight: float = 0.3
    limit: int = Field(default=10, ge=1)
    include_diagnostics: bool = False


class HybridResultItem(BaseModel):
    """A fused result: final weighted score plus both contributing scores."""

    id: str
    score: float
    semantic_score: float
    text_score: float
    document: dict[str, Any]


class HybridDiagnostics(BaseModel):
    """Optional report of sub-searches that failed and were treated as empty."""

    semantic_failed: bool = False
    text_failed: bool = False
    semantic_skipped: bool = False


class HybridSearchResponse(BaseModel):
    """Hybrid search response.

    total is the number of returned (post-truncation) results, not the size
    of the union of both candidate sets.
    """

    results: list[HybridResultItem]
    total: int
    diagnostics: HybridDiagnostics | None = None


class GlobalSearchRequest(BaseModel):
    q: str
    limit: int = Field(default=10, ge=1)


class GlobalSearchGroup(BaseModel):
    """Text hits of one entity in a global (all-entity) search."""

    entity: str
    items: list[dict[str, Any]]
