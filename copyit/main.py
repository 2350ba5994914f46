import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from copyit.api.http import auth_router, entries_router, health_router
from copyit.api.http.demo import DemoVisitorMiddleware
from copyit.api.ws.sync import ConnectionManager, router as websocket_router
from copyit.core.config import Settings, settings as default_settings
from copyit.core.db import build_engine, build_session_factory, init_models
from copyit.domains.entries.demo import DemoStores
from copyit.domains.entries.store import SqlDocumentStore
from copyit.domains.identity.demo import DemoIdentityProvider
from copyit.domains.identity.services import IdentityService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine = None

    if settings.is_configured:
        engine = build_engine(settings.database_url, echo=settings.sql_echo)
        await init_models(engine)
        session_factory = build_session_factory(engine)
        app.state.identity = IdentityService(session_factory, settings)
        app.state.store = SqlDocumentStore(session_factory)
        app.state.demo = False
    else:
        logger.warning(
            "Backend configuration is missing or incomplete. "
            "Running in demo mode; changes will not be saved."
        )
        app.state.identity = DemoIdentityProvider()
        app.state.store = None
        app.state.demo_stores = DemoStores(max_visitors=settings.demo_max_visitors)
        app.state.demo = True

    app.state.connections = ConnectionManager()

    try:
        yield
    finally:
        if engine is not None:
            await engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(
        title="CopyIt",
        description="Личный менеджер буфера обмена",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(DemoVisitorMiddleware)

    # Настройка CORS для работы с frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Подключаем роутеры
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(entries_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "name": "CopyIt",
            "version": VERSION,
            "demo_mode": app.state.demo,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()
