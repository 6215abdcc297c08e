"""FastAPI application entry point for arena_docs_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.cache.PLMCache import PLMCache
from shared.clients.plm.PLMClientManager import PLMClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.models.errors import BridgeError
from shared.ratelimit.RateLimiter import RateLimiter
from shared.storage.JsonFileStore import JsonFileStore
from shared.storage.MemoryStore import MemoryStore
from shared.storage.ScopedStore import ScopedStore
from services.catalog.CatalogService import CatalogService
from services.generation.GenerationService import GenerationService
from server.routers.SessionRouter import router as session_router
from server.routers.CatalogRouter import router as catalog_router
from server.routers.TokenRouter import router as token_router
from server.routers.AutodetectRouter import router as autodetect_router
from server.routers.GenerateRouter import router as generate_router
from server.routers.SettingsRouter import router as settings_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_dir = app.state.helper_config.get_store_dir()
    os.makedirs(store_dir, exist_ok=True)
    user_store = JsonFileStore(os.path.join(store_dir, "user_properties.json"))
    stores = ScopedStore(user_store=user_store, document_store=MemoryStore())

    plm_client = PLMClientManager(helper_config=app.state.helper_config, user_store=user_store).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config, user_store=user_store).get_client()

    # tests inject an httpx.MockTransport through app.state.transport
    transport = getattr(app.state, "transport", None)
    logging.info("Booting all clients...")
    for client in [plm_client, llm_client]:
        await client.boot(transport=transport)
    logging.info("All clients booted successfully.")

    app.state.user_store = user_store
    app.state.plm_client = plm_client
    app.state.llm_client = llm_client
    app.state.plm_cache = PLMCache(helper_config=app.state.helper_config, stores=stores)
    app.state.rate_limiter = RateLimiter(helper_config=app.state.helper_config, store=user_store)

    app.state.catalog_service = CatalogService(
        helper_config=app.state.helper_config,
        plm_client=plm_client,
        plm_cache=app.state.plm_cache,
    )
    app.state.generation_service = GenerationService(
        helper_config=app.state.helper_config,
        llm_client=llm_client,
        rate_limiter=app.state.rate_limiter,
    )

    if not plm_client.is_logged_in():
        logging.warning("No %s session stored. Log in through POST /session/login.", plm_client.get_engine_name())
    if not llm_client.has_api_key():
        logging.warning("No %s API key configured. Set one through PUT /settings/api-key.", llm_client.get_engine_name())

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [plm_client, llm_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="arena_docs_bridge",
    description=(
        "Document-merge engine between word-processing documents and the Arena PLM. "
        "Binds {{ARENA:<category>:<field>}} tokens to record fields, populates them from records "
        "and drafts document text with tokens pre-placed via Gemini."
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


@app.exception_handler(BridgeError)
async def handle_bridge_error(request: Request, exc: BridgeError) -> JSONResponse:
    """Render every bridge error as {"error", "next_step"} with its taxonomy status."""
    if exc.status_code >= 500:
        logging.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logging.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "next_step": exc.next_step})


app.include_router(session_router)
app.include_router(catalog_router)
app.include_router(token_router)
app.include_router(autodetect_router)
app.include_router(generate_router)
app.include_router(settings_router)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting arena_docs_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
