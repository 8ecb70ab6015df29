# RecipeBox Main Entry Point
#
#   uvicorn recipebox.main:create_app --factory
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.engine import Engine

from .context import AppContext
from .db import Base
from .errors import RecipeBoxError, Unauthenticated
from .routers.api import router as api_router
from .routers.auth import router as auth_router
from .routers.recipes import router as recipes_router
from .settings import Settings
from .views import render

logger = logging.getLogger("recipebox")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx: AppContext = app.state.context
    # An unreachable database at startup is fatal
    with ctx.engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    if ctx.settings.auto_create_schema:
        Base.metadata.create_all(bind=ctx.engine)
    logger.info("RecipeBox started")
    yield


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def _client_message(ctx: AppContext, exc: RecipeBoxError) -> str:
    if exc.status_code >= 500 and not ctx.settings.expose_error_details:
        return exc.public_message
    return exc.message


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthenticated)
    async def handle_unauthenticated(request: Request, exc: Unauthenticated):
        if _wants_json(request):
            return JSONResponse({"detail": exc.message}, status_code=401)
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(RecipeBoxError)
    async def handle_app_error(request: Request, exc: RecipeBoxError):
        ctx: AppContext = request.app.state.context
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        message = _client_message(ctx, exc)
        if _wants_json(request):
            return JSONResponse({"detail": message}, status_code=exc.status_code)
        return render(request, "error", None, message=message, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        if _wants_json(request):
            return JSONResponse({"detail": exc.errors()}, status_code=400)
        return render(request, "error", None, message="Invalid request", status_code=400)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application. Missing DATABASE_URL or SESSION_KEY raises here."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    context = AppContext.from_settings(settings, engine=engine)
    # StaticFiles checks the directory exists when mounted
    context.uploads.storage.ensure_root()

    app = FastAPI(title="RecipeBox", version="0.1.0", lifespan=lifespan)
    app.state.context = context

    install_error_handlers(app)

    app.mount(
        "/uploads",
        StaticFiles(directory=str(context.uploads.storage.root)),
        name="uploads",
    )
    app.include_router(api_router, prefix="/api", tags=["api"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(recipes_router, tags=["recipes"])
    return app
