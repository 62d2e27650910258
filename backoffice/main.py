"""
Back Office — FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from backoffice.api import (
    audit,
    auth,
    catalog,
    categories,
    dashboard,
    health,
    images,
    loyalty,
    orders,
    products,
    sales,
    suppliers,
    users,
)
from backoffice.core.config import get_settings
from backoffice.core.exceptions import BackofficeError
from backoffice.core.redis_client import close_redis
from backoffice.db.database import Base, engine
from backoffice.middleware.auth import JWTAuthMiddleware
from backoffice.middleware.rate_limiter import SlidingWindowRateLimiter
from backoffice.models import audit as audit_models, catalog as catalog_models  # noqa: F401
from backoffice.models import inventory, loyalty as loyalty_models, order, sale, user  # noqa: F401
from backoffice.schemas.common import ErrorResponse

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables (migrations are handled outside the app in production)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    # Shutdown
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Back Office",
    description="Retail back office: catalog, orders, point of sale, loyalty and invoicing.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)


# ── Error translation ─────────────────────────────────────────────────────────
def _error_body(request: Request, status_code: int, error: str, message: str) -> dict:
    return ErrorResponse(
        error=error,
        message=message,
        status=status_code,
        path=request.url.path,
        timestamp=datetime.now(tz=timezone.utc),
    ).model_dump(mode="json")


@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.error, exc.message),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body(request, 500, "Internal Server Error", "An unexpected error occurred."),
    )


# ── Middleware (last added runs first) ────────────────────────────────────────
app.add_middleware(JWTAuthMiddleware)

if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(SlidingWindowRateLimiter)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Prometheus Metrics ────────────────────────────────────────────────────────
if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

# ── Routers ───────────────────────────────────────────────────────────────────
for module in (
    auth, users, categories, suppliers, products, catalog, images,
    orders, sales, loyalty, audit, dashboard, health,
):
    app.include_router(module.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backoffice.main:app", host=settings.HOST, port=settings.PORT)
