"""
ASGI entry point.

WHAT: Application factory plus the module-level `app` uvicorn serves
WHY: Tests build apps around an injected engine; production builds its own
HOW: Lifespan owns the engine (sweep thread start, provider close), routes
     and exception handlers are attached per app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.router import api_router
from .core.config import settings
from .core.engine import EngineContainer, build_engine
from .middleware.error_handler import register_exception_handlers
from .utils.logger import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.engine is None:
        app.state.engine = build_engine()
    engine: EngineContainer = app.state.engine

    engine.start()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} ready")
    try:
        yield
    finally:
        await engine.shutdown()
        logger.info("Engine stopped")


def create_app(engine: Optional[EngineContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Prebuilt engine (tests inject one with a scripted provider);
                built from settings at startup when omitted
    """
    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def index():
        return {"app": settings.APP_NAME, "version": settings.APP_VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("haggle.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
