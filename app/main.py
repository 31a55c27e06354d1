import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from contextlib import asynccontextmanager

from app.database import create_db_and_tables
from app.config import settings
from app.utils.errors import InternalError, PersistenceUnavailableError
from app.routes import (
    admin_analytics,
    admin_orders,
    assets_admin,
    assets_public,
    auth,
    checkout,
    health,
    payments,
    user_orders,
    users,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local; elsewhere alembic owns the schema
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Digital Asset Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OperationalError)
async def database_unavailable(request: Request, exc: OperationalError):
    logger.error("Database unavailable during %s %s: %s", request.method, request.url.path, exc)
    error = PersistenceUnavailableError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(assets_public.router, prefix="/assets", tags=["Assets"])
app.include_router(assets_admin.router, prefix="/admin/assets", tags=["Admin Assets"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(payments.router, prefix="/payments", tags=["Payments"])
app.include_router(user_orders.router, prefix="/orders", tags=["Orders"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(admin_analytics.router, prefix="/admin", tags=["Admin Analytics"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "auth_endpoints": ["/auth/register", "/auth/login", "/auth/logout"],
        "user_endpoints": ["/users/me", "/users/me/favorites"],
        "asset_endpoints": [
            "/assets", "/assets/featured", "/assets/trending",
            "/assets/bestselling", "/assets/free", "/assets/categories",
            "/assets/{asset_id}", "/assets/{asset_id}/download",
        ],
        "checkout": ["/checkout", "/payments/webhook"],
        "orders": ["/orders", "/orders/{order_id}", "/orders/{order_id}/track"],
        "admin": [
            "/admin/assets", "/admin/orders", "/admin/orders/expire-stale",
            "/admin/analytics", "/admin/sales-report", "/admin/users",
        ],
    }
