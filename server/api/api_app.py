"""FastAPI application entry point for the CRM search bridge API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.IndexingRouter import indexing_router
from server.api.routers.SearchRouter import search_router
from server.api.services.SearchService import SearchService
from services.search_index.BackfillService import BackfillService
from services.search_index.IndexingService import IndexingService
from shared.clients.ClientBundle import ClientBundle
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.errors import ErrorKind, SearchBridgeError

app_version = os.getenv("APP_VERSION", "unknown")

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.ENGINE_FAILURE: 502,
    ErrorKind.VALIDATION: 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients, health checks included
    clients = ClientBundle(helper_config=app.state.config)
    await clients.boot()

    # Wire up services
    app.state.config_loader = clients.config_loader
    app.state.embed_manager = clients.embed_manager
    app.state.indexing_service = IndexingService(
        helper_config=app.state.config,
        search_client=clients.search_client,
        rag_client=clients.rag_client,
        embed_manager=clients.embed_manager,
        config_loader=clients.config_loader,
    )
    app.state.search_service = SearchService(
        helper_config=app.state.config,
        search_client=clients.search_client,
        rag_client=clients.rag_client,
        config_loader=clients.config_loader,
        indexing_service=app.state.indexing_service,
    )
    app.state.backfill_service = BackfillService(
        helper_config=app.state.config,
        store_client=clients.store_client,
        config_loader=clients.config_loader,
        indexing_service=app.state.indexing_service,
    )
    app.state.clients = clients

    app.state.logging.info("CRM search bridge API ready.", color="green")
    yield

    # Shutdown
    await clients.close()
    app.state.logging.info("CRM search bridge API shut down.")


app = FastAPI(
    title="CRM Search Bridge",
    description="Hybrid full-text and semantic search over multi-tenant CRM records.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SearchBridgeError)
async def handle_search_bridge_error(request: Request, exc: SearchBridgeError) -> JSONResponse:
    status_code = _STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        request.app.state.logging.error("%s: %s", exc.kind.value, exc.message)
    return JSONResponse(status_code=status_code, content={"error": exc.kind.value, "detail": exc.message})


@app.get("/health", tags=["Health"])
async def handle_health(request: Request) -> JSONResponse:
    """Report reachability of both engines and the primary store. Always 200; check the body."""
    clients: ClientBundle = request.app.state.clients
    status: dict[str, bool] = {}
    for client in (clients.search_client, clients.rag_client):
        try:
            await client.do_healthcheck()
            status[client.get_engine_name()] = True
        except SearchBridgeError:
            status[client.get_engine_name()] = False
    status[clients.store_client.get_engine_name()] = await clients.store_client.do_healthcheck()
    return JSONResponse(content={"status": "ok" if all(status.values()) else "degraded", "engines": status, "version": app_version})


app.include_router(search_router)
app.include_router(indexing_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging = setup_logging()
    logging.info(f"Starting CRM search bridge API v{app_version} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
