"""
OTG Track API
Local FastAPI shell over the production dossier tracker: dossiers with their
Cliché / Forme procurement status, OTG repair tickets, dashboard figures and
Excel import/export. State lives in JSON files under OTGTRACK_DATA_DIR.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from otgtrack import config
from otgtrack.services.code_engine import log_shared_sequence_spaces
from otgtrack.services.logging_config import setup_logging
from otgtrack.services.middleware import RequestTimingMiddleware
from otgtrack.services.repository import JsonFileRepository, Repository
from otgtrack.services.store import InventoryStore

setup_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON, log_file=config.LOG_FILE)
logger = logging.getLogger("otgtrack-api")


def create_app(repository: Optional[Repository] = None) -> FastAPI:
    """Build the application; ``repository`` defaults to JSON files in DATA_DIR."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repo = repository if repository is not None else JsonFileRepository(config.DATA_DIR)
        app.state.store = InventoryStore(repo)
        collisions = log_shared_sequence_spaces()
        if collisions:
            logger.warning(f"{collisions} machine code template(s) share a sequence")
        logger.info(f"{config.APP_NAME} ready")
        yield
        app.state.store = None

    app = FastAPI(
        title=f"{config.APP_NAME} API",
        version=config.APP_VERSION,
        description="Production dossier and tooling (Cliché / Forme) tracker",
        lifespan=lifespan,
    )

    # ---------------------------------------------------------------------------
    # Middleware
    # ---------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
    )
    # Outermost, so the timing covers every other middleware
    app.add_middleware(RequestTimingMiddleware)

    # ---------------------------------------------------------------------------
    # Routers
    # ---------------------------------------------------------------------------
    from otgtrack.api.calculator_routes import router as calculator_router
    from otgtrack.api.dashboard_routes import router as dashboard_router
    from otgtrack.api.dossier_routes import router as dossier_router
    from otgtrack.api.repair_routes import router as repair_router
    from otgtrack.api.settings_routes import router as settings_router
    from otgtrack.api.transfer_routes import router as transfer_router

    app.include_router(dossier_router)
    app.include_router(repair_router)
    app.include_router(dashboard_router)
    app.include_router(transfer_router)
    app.include_router(settings_router)
    app.include_router(calculator_router)

    @app.get("/health")
    async def health_check():
        store = getattr(app.state, "store", None)
        return {
            "status": "active",
            "version": config.APP_VERSION,
            "dossiers": len(store.items) if store else 0,
            "repairs": len(store.repairs) if store else 0,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("otgtrack.main:app", host="127.0.0.1", port=8000, reload=False)
