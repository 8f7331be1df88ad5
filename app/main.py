"""
Restaurant management - FastAPI Backend Application
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
import structlog

from app.config import settings
from app.database import SessionLocal, init_db
from app.api import auth, model
from app.api.error_handlers import register_error_handlers
from app.api.resources import build_resource_router
from app.rpc import HandlerOptions, RequestHandler
from app.schemas import (
    MenuValidation,
    OrderValidation,
    ReservationValidation,
    RestaurantValidation,
    ReviewValidation,
    UserProfileValidation,
)
from app.schemas.inputs import INPUT_SCHEMAS
from app.store import build_model_meta

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting restaurant API", version="1.0.0", application=settings.application_name)
    await init_db()
    yield
    logger.info("Shutting down restaurant API")


# Create FastAPI application
app = FastAPI(
    title=settings.application_name,
    description="Restaurants, menus, orders, reservations and reviews",
    version="1.0.0",
    lifespan=lifespan,
)

# Model metadata and input schemas are fixed for the life of the process
app.state.model_meta = build_model_meta()
app.state.rpc_handler = RequestHandler(HandlerOptions(
    model_meta=app.state.model_meta,
    input_schemas=INPUT_SCHEMAS,
))

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with dependency verification"""
    checks = {}

    # Check database
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {str(e)}"

    # Check Redis
    try:
        from app.jobs.celery_app import celery_app
        celery_app.control.ping(timeout=1)
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"failed: {str(e)}"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
    }


# Include API routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(model.router, prefix="/api/model", tags=["Model"])

app.include_router(build_resource_router("menus", MenuValidation), prefix="/api/menus", tags=["Menus"])
app.include_router(build_resource_router("orders", OrderValidation), prefix="/api/orders", tags=["Orders"])
app.include_router(
    build_resource_router("reservations", ReservationValidation),
    prefix="/api/reservations",
    tags=["Reservations"],
)
app.include_router(
    build_resource_router("restaurants", RestaurantValidation),
    prefix="/api/restaurants",
    tags=["Restaurants"],
)
app.include_router(build_resource_router("reviews", ReviewValidation), prefix="/api/reviews", tags=["Reviews"])
app.include_router(
    build_resource_router(
        "users",
        UserProfileValidation,
        collection_methods=("GET",),
        item_methods=("GET", "PUT"),
    ),
    prefix="/api/users",
    tags=["Users"],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
