"""
AI Ticket Assistant - Main Application
======================================

Support-ticket service with AI triage.

Modules:
- Tickets: creation, listing, staff updates, admin deletion
- Accounts: user identities, roles and skills
- Triage: classification, skill-based assignment, notification

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and business rules
- Infrastructure: Database, LLM SDKs, mail API, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from ticket_assistant.config import settings, ProcessingMode, TICKET_CREATED_EVENT
from ticket_assistant.core import ApplicationException

# Infrastructure
from ticket_assistant.infrastructure.database import (
    init_database, close_database, create_tables, get_session_context, ping_database
)

# Accounts
from ticket_assistant.accounts.application import AccountService
from ticket_assistant.accounts.infrastructure import SQLAlchemyUserRepository

# Triage
from ticket_assistant.triage.application import (
    ClassifierAdapter, AssignmentResolver, TriageOrchestrator, TriageRecoveryService,
    InlineTriageDispatcher, QueuedTriageDispatcher, ticket_created_handler
)
from ticket_assistant.triage.infrastructure import (
    SQLAlchemyTicketStore, SQLAlchemyUserDirectory,
    EmailNotifier, TriageRecoveryScheduler, build_classification_providers
)

# Module Routers
from ticket_assistant.tickets.interfaces import tickets_router
from ticket_assistant.accounts.interfaces import accounts_router
from ticket_assistant.triage.interfaces import triage_router

# Shared
from ticket_assistant.shared.infrastructure.events import InProcessEventBus
from ticket_assistant.shared.infrastructure.logging import setup_logging, get_logger
from ticket_assistant.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)

logger = get_logger(__name__)


def build_triage_pipeline(app: FastAPI) -> None:
    """
    Wire the triage pipeline onto ``app.state``.

    Raises:
        NoProviderConfigured: strict policy without any provider
    """
    providers = build_classification_providers(settings)
    classifier = ClassifierAdapter(
        providers,
        policy=settings.triage_policy,
        timeout_seconds=settings.provider_timeout_seconds
    )
    store = SQLAlchemyTicketStore()
    notifier = EmailNotifier.from_settings(settings)
    orchestrator = TriageOrchestrator(
        store=store,
        classifier=classifier,
        resolver=AssignmentResolver(SQLAlchemyUserDirectory()),
        notifier=notifier
    )

    event_bus = InProcessEventBus(
        workers=settings.event_workers,
        max_attempts=settings.event_max_attempts,
        retry_base_seconds=settings.event_retry_base_seconds
    )
    event_bus.subscribe(TICKET_CREATED_EVENT, ticket_created_handler(orchestrator))

    if settings.processing_mode == ProcessingMode.DIRECT:
        dispatcher = InlineTriageDispatcher(orchestrator)
    else:
        dispatcher = QueuedTriageDispatcher(event_bus)

    app.state.classifier = classifier
    app.state.notifier = notifier
    app.state.triage_orchestrator = orchestrator
    app.state.event_bus = event_bus
    app.state.triage_dispatcher = dispatcher
    app.state.triage_recovery = TriageRecoveryService(
        store, event_bus, settings.triage_recovery_stale_seconds
    )
    app.state.triage_scheduler = TriageRecoveryScheduler(
        interval_seconds=settings.triage_recovery_interval_seconds
    )

    logger.info(
        "Triage pipeline ready",
        extra={
            "policy": classifier.policy,
            "processing_mode": settings.processing_mode,
            "providers": classifier.provider_names
        }
    )


async def bootstrap_admin(email: str) -> None:
    async with get_session_context() as session:
        await AccountService(SQLAlchemyUserRepository(session)).ensure_admin(email)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Create the bootstrap admin
    4. Wire the triage pipeline (strict policy fails fast here)
    5. Start the event bus and the recovery scheduler

    SHUTDOWN:
    1. Stop the recovery scheduler and the event bus
    2. Close the mail client
    3. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting AI Ticket Assistant", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use Alembic in production)
    await create_tables()

    if settings.bootstrap_admin_email:
        await bootstrap_admin(settings.bootstrap_admin_email)

    build_triage_pipeline(app)

    await app.state.event_bus.start()

    recovery: TriageRecoveryService = app.state.triage_recovery

    async def triage_recovery_job():
        """Background sweep for stalled triage runs."""
        await recovery.requeue_stalled()

    await app.state.triage_scheduler.start(triage_recovery_job)

    logger.info("AI Ticket Assistant started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down AI Ticket Assistant")

    await app.state.triage_scheduler.stop()
    await app.state.event_bus.stop()
    await app.state.notifier.close()
    await close_database()

    logger.info("AI Ticket Assistant shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="AI Ticket Assistant API",
    description="""
    ## AI-Assisted Support Ticket Triage

    New tickets are classified (summary, priority, helpful notes, related
    skills), routed to a moderator with matching skills (else an admin) and
    the assignee is notified by email.

    Callers are identified by the `X-User-ID` header set by the upstream
    identity provider.

    ---

    ### Tickets
    - `POST /tickets` - Create a ticket and start triage
    - `GET /tickets` - List tickets (paginated, role-scoped)
    - `GET /tickets/{id}` - Get a ticket
    - `PATCH /tickets/{id}` - Update status, priority, notes, assignee (staff)
    - `DELETE /tickets/{id}` / `DELETE /tickets` - Delete (admin)

    ### Triage
    - `POST /tickets/{id}/triage` - Re-run triage (staff)
    - `GET /triage/status` - Providers, policy and pending runs (staff)

    ### Users
    - `GET /users`, `POST /users`, `PATCH /users` - User administration (admin)
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(tickets_router)
app.include_router(triage_router)
app.include_router(accounts_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity, classifier wiring, processing mode and
    background job state.
    """
    try:
        await ping_database()
        database = "connected"
    except Exception as e:
        logger.warning("Health check database ping failed", extra={"error": str(e)})
        database = "unavailable"

    classifier = getattr(request.app.state, "classifier", None)
    scheduler = getattr(request.app.state, "triage_scheduler", None)
    event_bus = getattr(request.app.state, "event_bus", None)

    checks = {
        "database": database,
        "providers": classifier.provider_names if classifier else [],
        "triage_policy": classifier.policy if classifier else settings.triage_policy,
        "processing_mode": settings.processing_mode,
        "event_bus": "running" if event_bus and event_bus.is_running else "stopped",
        "recovery_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
    }

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ticket_assistant.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
