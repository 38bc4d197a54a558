"""
FastAPI Application
==================

HTTP transport for the render pipeline. Requests are submitted to the
dispatcher and results are read back from the result store by request id.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from url2img import __version__
from url2img.api.routes import health, render
from url2img.config.logging import bind_request_context, clear_request_context, get_logger
from url2img.config.settings import Settings, get_settings
from url2img.core.queue.dispatcher import RequestDispatcher
from url2img.core.rendering.driver import PageRenderDriver
from url2img.core.rendering.engine import RenderEngine, RenderEngineError
from url2img.core.rendering.playwright_engine import PlaywrightEngine
from url2img.core.storage.result_store import ResultStore, create_result_store
from url2img.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the engine and result store, tear everything down on shutdown."""
    state = app.state
    logger.info("Starting url2img application")

    try:
        await state.engine.initialize()
    except RenderEngineError as e:
        logger.error("Rendering engine initialization failed", error=str(e))
        raise RuntimeError(f"Rendering engine initialization failed: {e}")

    try:
        await state.store.initialize()
    except Exception as e:
        logger.error("Failed to initialize result store", error=str(e))
        await state.engine.close()
        raise RuntimeError(f"Result store initialization failed: {e}")

    try:
        yield
    finally:
        logger.info("Shutting down url2img application")

        await state.dispatcher.close()

        try:
            await state.engine.close()
        except Exception as e:
            logger.error("Error closing rendering engine", error=str(e))

        try:
            await state.store.close()
        except Exception as e:
            logger.error("Error closing result store", error=str(e))


def create_app(
    engine: Optional[RenderEngine] = None,
    store: Optional[ResultStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        engine: Rendering engine, defaults to Playwright
        store: Result store, defaults to the backend selected in settings
        settings: Application settings

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Render web pages to PNG, JPEG or WEBP images",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.engine = engine or PlaywrightEngine(settings)
    app.state.store = store or create_result_store(settings)
    app.state.driver = PageRenderDriver(app.state.engine, app.state.store)
    app.state.dispatcher = RequestDispatcher(app.state.driver)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore
        """Add request ID to all responses."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        error_response = ErrorResponse(
            error=exc.detail,
            error_code=str(exc.status_code),
            request_id=getattr(request.state, "request_id", None),
        )
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=error_response.request_id,
        )
        return JSONResponse(
            status_code=exc.status_code, content=error_response.model_dump(mode="json")
        )

    @app.exception_handler(RenderEngineError)
    async def engine_exception_handler(request: Request, exc: RenderEngineError) -> JSONResponse:
        error_response = ErrorResponse(
            error="Rendering engine is not available. Please try again later.",
            error_code="RENDER_ENGINE_UNAVAILABLE",
            details={"message": str(exc)} if settings.debug else None,
            request_id=getattr(request.state, "request_id", None),
        )
        logger.error(
            "Rendering engine error", error=str(exc), request_id=error_response.request_id
        )
        return JSONResponse(status_code=503, content=error_response.model_dump(mode="json"))

    app.include_router(render.router)
    app.include_router(health.router)

    @app.get("/", tags=["General"])
    async def root() -> dict:
        """Basic API information."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "health_check": "/api/v1/health",
            "endpoints": {
                "submit": "POST /api/v1/render",
                "result": "GET /api/v1/render/{id}",
                "delete": "DELETE /api/v1/render/{id}",
            },
        }

    return app


app = create_app()


def run_server() -> None:
    """Run the HTTP server."""
    settings = get_settings()
    uvicorn.run(
        "url2img.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug and settings.environment == "development",
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
