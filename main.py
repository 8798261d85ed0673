from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
from app.core.config import settings
from app.core.db.base import build_engine, build_session_maker, init_db
from app.core.logging import get_logger
from app.apis.wizard.main import router as wizard_router, register_error_handlers
from app.modules.generation.client import GeminiCompleter, TextCompleter
from app.modules.generation.service import LearningContentGenerator
from app.modules.wizard.state import WizardManager
from app.modules.wizard.store import SqlStateStore, StateStore

import uvicorn
from fastapi.middleware.cors import CORSMiddleware


logger = get_logger(__name__)


def create_app(
    store: Optional[StateStore] = None,
    completer: Optional[TextCompleter] = None,
    generator: Optional[LearningContentGenerator] = None,
) -> FastAPI:
    engine = None
    if store is None:
        engine = build_engine()
        store = SqlStateStore(build_session_maker(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            init_db(engine)
        logger.info(f"{settings.app.name} {settings.app.version} started")
        try:
            yield
        finally:
            if engine is not None:
                engine.dispose()

    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.wizard_manager = WizardManager(store, base_key=settings.storage.state_key)
    app.state.generator = generator or LearningContentGenerator(
        completer or GeminiCompleter()
    )

    register_error_handlers(app)
    app.include_router(wizard_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        print(f"An error occurred when starting the server: {e}.")
