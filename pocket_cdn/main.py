import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException

from pocket_cdn.api.routers import files as files_router
from pocket_cdn.api.routers import pages as pages_router
from pocket_cdn.api.routers import uploads as uploads_router
from pocket_cdn.api.templating import render_not_found, render_page
from pocket_cdn.core.config import get_settings
from pocket_cdn.core.logging_config import configure_logging
from pocket_cdn.db.session import dispose_engine, get_session_factory, init_models
from pocket_cdn.services.storage import get_storage_service
from pocket_cdn.services.upload_links import purge_expired_upload_links

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.db_auto_create:
        await init_models()
    async with get_session_factory()() as session:
        await purge_expired_upload_links(session)
    get_storage_service()
    logger.info("pocket-cdn started (env=%s)", settings.env)

    yield
    await dispose_engine()


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return render_not_found(request)
    return await http_exception_handler(request, exc)


async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Application error on %s %s", request.method, request.url.path)
    return render_page(request, "error.html", status_code=500)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="pocket-cdn",
        lifespan=lifespan,
    )

    app.include_router(pages_router.router)
    app.include_router(uploads_router.router)
    app.include_router(files_router.router)

    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
