"""FastAPI application: CORS, health and suggestion routes."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engine import EngineConfig, configure_logging

from .config import BUILD_ON_STARTUP, CORS_ORIGINS
from .routes import suggestions
from .services.suggestion_service import SuggestionService


def create_app(config: Optional[EngineConfig] = None, build_on_startup: bool = BUILD_ON_STARTUP) -> FastAPI:
    """App factory; config defaults to EngineConfig.from_env() at start-up."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine_config = config or EngineConfig.from_env()
        configure_logging(engine_config.log_level)
        service = SuggestionService.from_config(engine_config)
        app.state.suggestions = service
        await service.start(wait=build_on_startup)
        try:
            yield
        finally:
            await service.stop()
            app.state.suggestions = None

    app = FastAPI(
        title="Phonetic Suggestion API",
        description="Words that sound like a partially typed token, ranked by spelling distance",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(suggestions.router)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
