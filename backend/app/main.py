import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backend.app.core.limiter import limiter
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import delivery_zones, orders, restaurants, ws
from backend.app.api.deps import get_session
from backend.app.services.cache import CacheService
from backend.app.services.notifications import get_dispatcher
from backend.app.core.logging import setup_logging, get_logger
from backend.app.core.settings import get_settings
from backend.app.core.metrics import PrometheusMiddleware, get_metrics_response

# Load and validate settings
try:
    settings = get_settings()
except ValueError as e:
    print(f"Configuration error: {e}", file=sys.stderr)
    sys.exit(1)

# Use JSON format in production
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.is_production
)

logger = get_logger(__name__)

logger.info(
    "Application configuration loaded",
    environment=settings.ENVIRONMENT,
    db_host=settings.DB_HOST,
    redis_host=settings.REDIS_HOST,
    timezone=settings.TIMEZONE,
    printer_configured=bool(settings.PRINTER_SERVICE_URL),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - Startup: validate production configuration
    - Shutdown: let in-flight prints/broadcasts finish, close Redis
    """
    errors = settings.validate_production_settings()
    if errors:
        for error in errors:
            logger.error("Configuration error", error=error)
        raise RuntimeError("; ".join(errors))
    logger.info("Application starting up", version="1.0.0")
    yield
    logger.info("Application shutting down")
    dispatcher = get_dispatcher()
    if dispatcher.pending:
        logger.info("Waiting for pending side effects", count=dispatcher.pending)
        await dispatcher.drain()
    await CacheService.close()


app = FastAPI(title="PizzaHouse Fulfillment", lifespan=lifespan)

# Use shared limiter (routers use the same instance for @limiter.limit)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS must be added first (runs last on the response)
ALLOWED_ORIGINS = settings.allowed_origins_list
logger.info("CORS configuration", allowed_origins=ALLOWED_ORIGINS, is_production=settings.is_production)
if not ALLOWED_ORIGINS:
    if settings.is_production:
        logger.error("ALLOWED_ORIGINS must be set in production environment")
        raise ValueError("ALLOWED_ORIGINS environment variable is required in production")
    ALLOWED_ORIGINS = ["*"]
    logger.warning("CORS: Allowing all origins (development mode). Set ALLOWED_ORIGINS in production!")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(PrometheusMiddleware)

app.include_router(delivery_zones.router, prefix="/delivery-zones", tags=["delivery-zones"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])
app.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])
app.include_router(ws.router, tags=["ws"])


@app.get("/")
async def root():
    return {"status": "ok"}


@app.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    Health check endpoint for monitoring and orchestration.
    Checks database and Redis connectivity.
    """
    health_status = {
        "status": "healthy",
        "version": "1.0.0",
        "checks": {
            "database": "ok",
            "redis": "ok"
        }
    }

    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    try:
        redis = await CacheService.get_redis()
        await redis.ping()
    except Exception as e:
        logger.error("Redis health check failed", error=str(e))
        health_status["status"] = "unhealthy"
        health_status["checks"]["redis"] = f"error: {str(e)}"

    return health_status


@app.get("/metrics")
async def metrics_endpoint(openmetrics: bool = False):
    """
    Prometheus metrics endpoint.

    Args:
        openmetrics: If True, return OpenMetrics format
    """
    return get_metrics_response(openmetrics=openmetrics)
