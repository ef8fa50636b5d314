import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .db import init_db
from .api.routers import health, stocks, maintenance_requests, maintenance_plans, maintenance_works
from .infrastructure.logging_config import setup_logging
from .config import settings as app_settings

# Configure logging on startup
setup_logging()
logger = logging.getLogger(__name__)

# Create tables (do not fail when the database is not reachable yet)
try:
    init_db()
except Exception as e:
    logger.warning("Could not initialize the database: %s. Run the migrations once it is reachable.", e)

app = FastAPI(
    title="FMS - Facilities Management",
    version="0.1.0",
    description="Material stock ledger and maintenance lifecycle",
    docs_url="/docs" if app_settings.environment != "production" else None,
    redoc_url="/redoc" if app_settings.environment != "production" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    expose_headers=["X-Total-Count"],
)

# HTTP security headers
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if app_settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response

app.include_router(health.router)
app.include_router(stocks.router)
app.include_router(maintenance_requests.router)
app.include_router(maintenance_plans.router)
app.include_router(maintenance_works.router)
