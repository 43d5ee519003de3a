"""
Legal Records Registry - FastAPI application.

Run with:
    uvicorn legal_registry.main:app
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from legal_registry.core.config import Settings, get_settings
from legal_registry.core.database import build_engine, build_session_factory, init_db
from legal_registry.core.errors import setup_exception_handlers
from legal_registry.core.logging_config import setup_logging
from legal_registry.core.logging_middleware import RequestLoggingMiddleware
from legal_registry.routers import chain, health, legal_records
from legal_registry.routers.deps import take_snapshot
from legal_registry.services.chain_clock import ChainClock
from legal_registry.services.fee_ledger import FeeLedger
from legal_registry.services.legal_records import RecordRegistry, RegistryConfig, RegistryState
from legal_registry.services.record_store import RecordStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging; load the host snapshot on startup and save it on shutdown."""
    settings: Settings = app.state.settings
    setup_logging(level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file)

    store: Optional[RecordStore] = app.state.record_store
    if store is not None:
        await init_db(app.state.db_engine)
        snapshot = await store.load()
        if snapshot is not None:
            app.state.registry.restore(snapshot.state)
            app.state.ledger.restore(snapshot.balances, snapshot.transfers)
            # Logical time never goes backwards across a restart
            if snapshot.block_height > app.state.clock.height:
                app.state.clock.sync_to(snapshot.block_height)

    logger.info("%s %s started", settings.app_name, settings.app_version)
    try:
        yield
    finally:
        if store is not None:
            async with app.state.registry_lock:
                await store.save(take_snapshot(app))
            await app.state.db_engine.dispose()
        logger.info("%s stopped", settings.app_name)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with a fresh registry."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    ledger = FeeLedger(opening_balance=settings.opening_balance)
    state = RegistryState(config=RegistryConfig(
        max_records=settings.max_records,
        registration_fee=settings.registration_fee,
        governance_threshold=settings.governance_threshold,
    ))

    app.state.settings = settings
    app.state.ledger = ledger
    app.state.clock = ChainClock(settings.genesis_block_height)
    app.state.registry = RecordRegistry(transfer=ledger, state=state)
    # One registry call (fee transfer included) completes before the next starts
    app.state.registry_lock = asyncio.Lock()

    if settings.persist_registry:
        app.state.db_engine = build_engine(settings.database_url, echo=settings.debug)
        app.state.record_store = RecordStore(build_session_factory(app.state.db_engine))
    else:
        app.state.db_engine = None
        app.state.record_store = None

    app.add_middleware(RequestLoggingMiddleware)
    setup_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(legal_records.router)
    app.include_router(chain.chain_router)
    app.include_router(chain.ledger_router)

    @app.get("/")
    async def root():
        return {"name": settings.app_name, "version": settings.app_version, "status": "ok"}

    return app


app = create_app()
