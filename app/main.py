import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError

from .config import settings
from .db import Base, engine
from .logging import setup_logging, RequestIdMiddleware, structlog
from .services import audit  # noqa: F401  registers the audit flush listeners
from .auth.router import router as auth_router
from .routes.users import router as users_router
from .routes.lookups import routers as lookup_routers
from .routes.customers import router as customers_router
from .routes.venues import router as venues_router
from .routes.contacts import router as contacts_router
from .routes.personnel import router as personnel_router
from .routes.gigs import router as gigs_router
from .routes.calendar import router as calendar_router
from .routes.payouts import router as payouts_router
from .routes.checkins import router as checkins_router
from .routes.invoices import router as invoices_router
from .routes.files import router as files_router
from .routes.integrations import router as integrations_router
from .routes.analytics import router as analytics_router
from .routes.audit import router as audit_router


logger = structlog.get_logger(__name__)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(status_code=409, content={"detail": "Conflict with existing data"})


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    for lookup_router in lookup_routers:
        app.include_router(lookup_router)
    app.include_router(customers_router)
    app.include_router(venues_router)
    app.include_router(contacts_router)
    app.include_router(personnel_router)
    app.include_router(gigs_router)
    app.include_router(calendar_router)
    app.include_router(payouts_router)
    app.include_router(checkins_router)
    app.include_router(invoices_router)
    app.include_router(files_router)
    app.include_router(integrations_router)
    app.include_router(analytics_router)
    app.include_router(audit_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        logger.info("startup", environment=settings.environment)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("tables_verified", count=len(Base.metadata.tables))

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app


app = create_app()
