"""Search router: text, semantic, hybrid and global search within a tenant and unit."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.search import GlobalSearchRequest, HybridSearchRequest, SemanticSearchRequest, TextSearchQuery
from shared.models.tenant import TenantContext

search_router = APIRouter(prefix="/{tenant}/{unit}/search", dependencies=[Depends(verify_api_key)], tags=["Search"])


@search_router.post("/text")
async def handle_text_search(request: Request, tenant: str, unit: str, body: TextSearchQuery) -> JSONResponse:
    ctx = TenantContext.build(tenant, unit)
    result = await request.app.state.search_service.text_search(ctx, body)
    return JSONResponse(content=result.model_dump())


@search_router.post("/semantic")
async def handle_semantic_search(request: Request, tenant: str, unit: str, body: SemanticSearchRequest) -> JSONResponse:
    ctx = TenantContext.build(tenant, unit)
    hits = await request.app.state.search_service.semantic_search(ctx, body.entity, body.q, body.limit)
    return JSONResponse(content=[hit.model_dump() for hit in hits])


@search_router.post("/hybrid")
async def handle_hybrid_search(request: Request, tenant: str, unit: str, body: HybridSearchRequest) -> JSONResponse:
    """Weighted semantic + full-text search.

    Sub-search failures degrade the result silently unless include_diagnostics is set.
    """
    ctx = TenantContext.build(tenant, unit)
    request.app.state.logging.info("Hybrid search received: %s/%s entity=%s q=%r", tenant, unit, body.entity, body.q[:80])
    result = await request.app.state.search_service.hybrid_search(
        ctx,
        body.entity,
        body.q,
        semantic_weight=body.semantic_weight,
        text_weight=body.text_weight,
        limit=body.limit,
        include_diagnostics=body.include_diagnostics,
    )
    return JSONResponse(content=result.model_dump(exclude_none=True))


@search_router.post("/global")
async def handle_global_search(request: Request, tenant: str, unit: str, body: GlobalSearchRequest) -> JSONResponse:
    ctx = TenantContext.build(tenant, unit)
    groups = await request.app.state.search_service.global_search(ctx, body.q, body.limit)
    return JSONResponse(content=[group.model_dump() for group in groups])
