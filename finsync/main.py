from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finsync.core.config import Settings, settings as default_settings
from finsync.gateway.backend import BackendGateway
from finsync.routers import alerts, banks, budget, dashboard, health, sync
from finsync.utils.alerts import AlertBook
from finsync.utils.pipeline import DashboardLoader
from finsync.utils.scheduler import SyncScheduler
from finsync.utils.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


def create_app(gateway=None, scheduler=None, settings: Settings = None) -> FastAPI:
    settings = settings or default_settings
    owns_gateway = gateway is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=settings.LOG_LEVEL.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        # Startup: wire services, then start the scheduler and auto-sync
        app_gateway = gateway or BackendGateway.from_settings(settings)
        app_scheduler = scheduler or SyncScheduler()
        loader = DashboardLoader(app_gateway, settings)
        orchestrator = SyncOrchestrator.from_settings(
            app_gateway, app_scheduler, settings, on_complete=loader.invalidate
        )

        app.state.settings = settings
        app.state.gateway = app_gateway
        app.state.scheduler = app_scheduler
        app.state.loader = loader
        app.state.alert_book = AlertBook(app_gateway)
        app.state.orchestrator = orchestrator

        logger.info("Starting scheduler...")
        app_scheduler.start()
        await orchestrator.start(auto_sync=settings.AUTO_SYNC_ENABLED)
        yield
        # Shutdown: stop timers before the scheduler and the HTTP client go away
        logger.info("Stopping scheduler...")
        await orchestrator.stop()
        app_scheduler.shutdown()
        if owns_gateway:
            await app_gateway.aclose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Root endpoint
    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    # Register routers
    app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(dashboard.router, prefix=f"{settings.API_PREFIX}/dashboard", tags=["Dashboard"])
    app.include_router(sync.router, prefix=f"{settings.API_PREFIX}/sync", tags=["Sync"])
    app.include_router(budget.router, prefix=f"{settings.API_PREFIX}", tags=["Budget"])
    app.include_router(alerts.router, prefix=f"{settings.API_PREFIX}/alerts", tags=["Alerts"])
    app.include_router(banks.router, prefix=f"{settings.API_PREFIX}", tags=["Banks"])
    return app


app = create_app()
