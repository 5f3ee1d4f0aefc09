import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ambulance_dispatch import __version__
from ambulance_dispatch.container import DispatchContainer
from ambulance_dispatch.core.config import Settings, get_settings
from ambulance_dispatch.core.exceptions import AppException
from ambulance_dispatch.domains.dispatch import dispatch_router
from ambulance_dispatch.domains.fleet.store import DispatchStore
from ambulance_dispatch.domains.lifecycle import simulation_router
from ambulance_dispatch.domains.websocket.router import router as websocket_router


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[DispatchStore] = None) -> FastAPI:
    """
    Build the API application

    Args:
        settings: defaults to get_settings()
        store: overrides the storage backend named in settings
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Ambulance Dispatch API",
        description="Ambulance dispatch and incident lifecycle simulation",
        version=__version__,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )
    app.state.settings = settings
    app.state.container = DispatchContainer.build(settings, store=store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error_code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "details": str(exc) if settings.debug else None,
            },
        )

    app.include_router(dispatch_router, prefix=settings.api_prefix)
    app.include_router(simulation_router, prefix=settings.api_prefix)
    app.include_router(websocket_router, prefix="/ws")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop running lifecycles and release the database engine"""
        await app.state.container.shutdown()
        logger.info("Dispatch container stopped")

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "active_lifecycles": app.state.container.coordinator.active_lifecycle_count(),
        }

    return app


if __name__ == "__main__":
    import uvicorn
    _settings = get_settings()
    uvicorn.run(
        "ambulance_dispatch.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=_settings.debug,
    )
