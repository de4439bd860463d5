"""
MSP ITSM Core - Main Application
================================

Ticket lifecycle and SLA tracking for a multi-tenant MSP console.

Modules:
- Tickets: Incident, change request and service request lifecycle
- SLA: Policy resolution, deadlines and health badges

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, state machines, SLA calculators
- Infrastructure: Database, policy file watcher
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from msp_itsm.config import Settings, get_settings
from msp_itsm.core import ApplicationException

# Infrastructure
from msp_itsm.infrastructure.database import init_database, close_database, create_tables

# SLA Module - policy file source
from msp_itsm.sla.infrastructure import PolicyFileWatcher, YAMLPolicyStore

# Module Routers
from msp_itsm.sla.interfaces import sla_router
from msp_itsm.tickets.interfaces import tickets_router

# Middleware
from msp_itsm.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

# Logging
from msp_itsm.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Load SLA policy file and start watching it (file source only)

    SHUTDOWN:
    1. Stop policy file watcher
    2. Close database connections
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting MSP ITSM service", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "sla_policy_source": settings.sla_policy_source
    })

    logger.info("Initializing database")
    init_database(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow
    )

    # Create tables (for development - use migrations in production)
    logger.info("Creating database tables")
    await create_tables()

    watcher = None
    if settings.sla_policy_source == "file":
        logger.info("Loading SLA policy file", extra={"path": str(settings.sla_policy_file)})
        store = YAMLPolicyStore(settings.sla_policy_file)
        watcher = PolicyFileWatcher(store)
        watcher.start()
        app.state.policy_store = store
        app.state.policy_watcher = watcher

    logger.info("MSP ITSM service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down MSP ITSM service")

    if watcher is not None:
        watcher.stop()

    await close_database()

    logger.info("MSP ITSM service shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="MSP ITSM API",
        description="""
        ## ITSM core for a multi-tenant MSP console

        ### Tickets
        - `POST /itsm/{kind}` - Open an incident, change request or service request
        - `GET /itsm/{kind}/{id}` - Get a ticket
        - `POST /itsm/{kind}/{id}/status` - Change status (validated per kind)
        - `POST /itsm/{kind}/{id}/assign`, `/unassign` - Assignment
        - `GET /itsm/{kind}/{id}/transitions` - Legal next statuses

        ### SLA
        - `GET /sla/{kind}/{id}` - SLA badge (on_track, at_risk, breached, not_applicable)
        - `GET /sla/dashboard/{kind}` - Health counts
        - `GET /sla/breached/{kind}` - Open tickets in breach
        - `/sla/policies` - Policy administration (create, edit, deactivate)

        SLA health is recomputed on every read.
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last so it runs first and the logger sees the correlation id
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)
    app.include_router(sla_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "sla_policy_source": "file",
                            "sla_policy_watcher": "watching"
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        watcher = getattr(request.app.state, "policy_watcher", None)
        checks = {
            "sla_policy_source": settings.sla_policy_source,
            "sla_policy_watcher": (
                "watching" if watcher is not None and watcher.is_watching else "not_watching"
            )
        }
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "tickets": {"prefix": "/itsm"},
                "sla": {"prefix": "/sla"}
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "msp_itsm.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.environment == "development",
        log_level=_settings.log_level.lower()
    )
