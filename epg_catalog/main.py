import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from epg_catalog import __version__
from epg_catalog.config import settings, setup_logging
from epg_catalog.routers import main_router
from epg_catalog.services import catalog_scheduler, catalog_store, fetch_and_process


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Serve the last published catalog, then keep it fresh on schedule"""
    logger.info(f"Starting EPG Catalog {__version__}")

    loaded = await catalog_store.load(settings.catalog_output_path)
    catalog_scheduler.start()

    startup_build: asyncio.Task | None = None
    if settings.catalog_build_on_startup:
        logger.info("Building catalog in the background (%s)", "refresh" if loaded else "first build")
        startup_build = asyncio.create_task(fetch_and_process())

    yield

    logger.info("Shutting down EPG Catalog")
    if startup_build is not None and not startup_build.done():
        startup_build.cancel()
        with suppress(asyncio.CancelledError):
            await startup_build

    try:
        catalog_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)


app = FastAPI(
    title="EPG Catalog",
    version=__version__,
    lifespan=lifespan
)

app.include_router(main_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors and return them without echoing large inputs"""
    errors = [
        {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100],
        }
        for error in exc.errors()
    ]
    logger.error(f"Validation error for {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors})
