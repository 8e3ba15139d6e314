"""FastAPI application.

``create_app`` builds the app; the module-level ``app`` is what uvicorn
serves.  On startup the lifespan opens the configured database, creates
missing tables and bootstraps ``settings.administrator_identity`` unless a
ledger was handed in already (tests, embedding).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from producttrace.config import settings
from producttrace.database import build_engine, build_sessionmaker, create_tables
from producttrace.middleware.exceptions import register_exception_handlers
from producttrace.routers import batches, events, health, overview, producers, products
from producttrace.services.ledger import SupplyChainLedger
from producttrace.services.notifier import LoggingNotifier

logger = logging.getLogger("producttrace.ledger")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.getLogger("producttrace").setLevel(settings.log_level.upper())

    if getattr(app.state, "ledger", None) is not None:
        yield
        return

    engine = build_engine(app.state.database_url, echo=settings.debug)
    await create_tables(engine)
    app.state.ledger = SupplyChainLedger(
        build_sessionmaker(engine),
        notifiers=[LoggingNotifier()],
    )
    if settings.administrator_identity:
        await app.state.ledger.bootstrap(settings.administrator_identity)
    else:
        logger.warning("ADMINISTRATOR_IDENTITY is not set; producers cannot be managed")
    logger.info("Ledger ready on %s", engine.url.render_as_string(hide_password=True))

    try:
        yield
    finally:
        app.state.ledger = None
        await engine.dispose()


def create_app(
    ledger: SupplyChainLedger | None = None,
    database_url: str | None = None,
) -> FastAPI:
    app = FastAPI(
        title="ProductTrace",
        description="Product and production batch provenance ledger",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.ledger = ledger
    app.state.database_url = database_url or settings.database_url

    # ── Exception Handlers ───────────────────────────────────
    register_exception_handlers(app)

    # ── Middleware ───────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ──────────────────────────────────────────────
    # Reads are public; writes take the caller from the bearer token
    app.include_router(health.router)
    app.include_router(overview.router, prefix="/api/ledger", tags=["ledger"])
    app.include_router(producers.router, prefix="/api/producers", tags=["producers"])
    app.include_router(products.router, prefix="/api/products", tags=["products"])
    app.include_router(batches.router, prefix="/api/batches", tags=["batches"])
    app.include_router(events.router, prefix="/api/events", tags=["events"])

    return app


app = create_app()
