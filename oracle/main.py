"""FastAPI application for the Oracle tarot service.

Run with: uvicorn oracle.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oracle.cards import get_catalog
from oracle.completion import CompletionClient
from oracle.config import OracleConfig, configure_logging
from oracle.pipeline import ReadingPipeline
from oracle.routes.catalog_routes import router as catalog_router
from oracle.routes.reading_routes import router as reading_router
from oracle.routes.session_routes import router as session_router
from oracle.routes.usage_routes import router as usage_router
from oracle.sessions_storage.sessions_db import SessionStore


def create_app(
    config: Optional[OracleConfig] = None,
    pipeline: Optional[ReadingPipeline] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    config = config or OracleConfig.from_env()
    configure_logging(config.log_level)

    # fail at startup on broken catalog data or a missing API key
    get_catalog()
    owned_client: Optional[CompletionClient] = None
    if pipeline is None:
        owned_client = CompletionClient(config)
        pipeline = ReadingPipeline(owned_client, config=config)
    if store is None:
        store = SessionStore(config.db_path)
    store.init_db()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # injected pipelines own their clients
        if owned_client is not None:
            owned_client.close()

    app = FastAPI(title="Oracle Tarot", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.pipeline = pipeline
    app.state.store = store

    app.include_router(catalog_router)
    app.include_router(reading_router)
    app.include_router(session_router)
    app.include_router(usage_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
