"""FastAPI application entry point for handbook_search."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface
from shared.models.errors import HandbookSearchError, NotFoundError, ProviderError, ValidationError
from services.document_search.SearchService import SearchService
from services.runtime import open_runtime
from server.routers.SearchRouter import router as search_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    logging.info("Booting all clients...")
    async with open_runtime(app.state.helper_config, with_translation=False) as runtime:
        logging.info("All clients booted successfully.")
        app.state.search_service = SearchService(
            helper_config=app.state.helper_config,
            store=runtime.store,
            embed_client=runtime.embed_client,
        )

        await check_connections(runtime.embed_client, runtime.store)

        # while the app is running...
        yield

        # leaving the block closes all client connections
        logging.info("Shutting down — closing all clients...")


app = FastAPI(
    title="handbook_search",
    description=(
        "Bilingual semantic search over an engineering handbook. "
        "Markdown documents are embedded with Ollama and stored in PostgreSQL/pgvector; "
        "GET /api/search merges matches on the English and the Czech embeddings."
    ),
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

app.include_router(search_router)


def _problem(status: int, title: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"type": "about:blank", "title": title, "status": status, "detail": detail},
        media_type="application/problem+json",
    )


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _problem(400, "Bad Request", str(exc))


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed query parameters are caller errors like any other ValidationError
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return _problem(400, "Bad Request", detail)


@app.exception_handler(NotFoundError)
async def handle_not_found_error(request: Request, exc: NotFoundError) -> JSONResponse:
    return _problem(404, "Not Found", str(exc))


@app.exception_handler(HandbookSearchError)
async def handle_search_error(request: Request, exc: HandbookSearchError) -> JSONResponse:
    logging.error("Request to %s failed: %s", request.url.path, exc)
    return _problem(500, "Search failed", str(exc))


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"status": "ok"}


async def check_connections(embed_client: EmbedClientInterface, store: DocumentStoreInterface) -> None:
    """Check connectivity to the embedding provider and the database on startup.

    Both are required to serve a single query, so any failure is fatal.

    Raises:
        ProviderError: If the embedding provider or the database is not reachable.
    """
    result: httpx.Response = await embed_client.do_healthcheck()
    if not result.is_success:
        raise ProviderError(
            f"Embed client '{embed_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot serve queries.",
            status_code=result.status_code,
        )

    if not await store.do_healthcheck():
        raise ProviderError(
            f"Document store '{store.__class__.__name__}' is not reachable. Cannot serve queries.",
            category="storage",
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting handbook_search API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
