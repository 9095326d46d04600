"""Indexing router: backfill, indexing metrics and configuration cache invalidation."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key

indexing_router = APIRouter(prefix="/indexing", dependencies=[Depends(verify_api_key)], tags=["Indexing"])


@indexing_router.post("/backfill")
async def handle_backfill(request: Request, tenant_id: str | None = None) -> JSONResponse:
    """Re-index every stored record of one tenant, or of all tenants.

    Runs inline; per-record failures are counted in the report, never raised.
    """
    report = await request.app.state.backfill_service.do_backfill(tenant_id=tenant_id)
    return JSONResponse(content={"summary": report.summary(), **report.model_dump()})


@indexing_router.post("/cache/clear")
async def handle_cache_clear(request: Request, tenant_id: str | None = None) -> JSONResponse:
    """Drop cached tenant configuration and embedding clients after a configuration change."""
    state = request.app.state
    state.config_loader.clear_cache(tenant_id)
    await state.embed_manager.clear(tenant_id)
    if tenant_id is None:
        state.indexing_service.reset()
    state.logging.info("Configuration cache cleared for %s.", tenant_id or "all tenants")
    return JSONResponse(content={"status": "ok", "tenant_id": tenant_id})


@indexing_router.get("/metrics")
async def handle_metrics(request: Request, tenant_id: str) -> JSONResponse:
    """Expected against indexed collections of one tenant, grouped into global, local and unknown."""
    metrics = await request.app.state.indexing_service.get_metrics(tenant_id)
    return JSONResponse(content=metrics.model_dump(by_alias=True))
