import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from tortoise import Tortoise
from tortoise.contrib.fastapi import tortoise_exception_handlers

from .core import logging_config  # noqa: F401  configures the "gold_inventory" logger
from .core.config import DATABASE_URL, REMOTE_API_KEY, REMOTE_TIMEOUT_SECONDS, REMOTE_URL, STORAGE_BUCKET
from .features.auth.router import router as auth_router
from .features.items.router import router as items_router
from .features.items.service import pull_and_merge
from .features.orders.router import router as orders_router
from .remote.client import PostgrestRemoteStore
from .remote.storage import SupabasePhotoStorage

logger = logging.getLogger("gold_inventory.main")  # This logger will inherit from 'gold_inventory'

TORTOISE_ORM_CONFIG = {
    "connections": {
        "default": DATABASE_URL
    },
    "apps": {
        "models": {
            "models": [
                "gold_inventory.features.items.models",
            ],
            "default_connection": "default",
        }
    },
}


async def initial_pull(app: FastAPI) -> None:
    """Startup pull; the result is dropped if the app shuts down first."""
    result = await pull_and_merge(app.state.remote_store, is_cancelled=lambda: app.state.shutting_down)
    if result is not None:
        logger.info(f"Startup pull: {result.message}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Connects the local database and the remote clients, then starts the
    initial pull in the background so the API answers from local data
    right away.
    """
    logger.info("Starting application...")
    await Tortoise.init(config=TORTOISE_ORM_CONFIG)
    await Tortoise.generate_schemas(safe=True)
    logger.info("Tortoise-ORM has been initialized.")

    app.state.remote_store = PostgrestRemoteStore(REMOTE_URL, REMOTE_API_KEY, timeout=REMOTE_TIMEOUT_SECONDS)
    app.state.photo_storage = SupabasePhotoStorage(
        REMOTE_URL, REMOTE_API_KEY, STORAGE_BUCKET, timeout=REMOTE_TIMEOUT_SECONDS
    )
    app.state.shutting_down = False
    pull_task = asyncio.create_task(initial_pull(app))

    yield

    app.state.shutting_down = True
    if not pull_task.done():
        pull_task.cancel()
    try:
        await pull_task
    except asyncio.CancelledError:
        logger.info("Startup pull cancelled on shutdown.")
    await app.state.remote_store.aclose()
    await app.state.photo_storage.aclose()
    await Tortoise.close_connections()
    logger.info("Tortoise-ORM connections have been closed.")


app = FastAPI(
    title="Gold Inventory API",
    description="Jewelry inventory kept on the device and reconciled with the cloud.",
    version="0.1.0",
    exception_handlers=tortoise_exception_handlers(),
    lifespan=lifespan,
)


@app.get("/")
async def read_root(request: Request):
    """
    Root endpoint for the API.
    """
    client_host = request.client.host if request.client else "unknown client"
    logger.info(f"Root endpoint '/' accessed by {client_host}")
    return {"message": "Welcome to the Gold Inventory API!"}


app.include_router(auth_router, prefix="/api/v1")
app.include_router(items_router, prefix="/api/v1")
app.include_router(orders_router, prefix="/api/v1")
