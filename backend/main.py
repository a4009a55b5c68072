from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import get_db

# ENV
from config.env import ENV, CORS_ALLOWED_ORIGINS, LOG_LEVEL, validate_production_env

# ROUTES
from routes.products import router as products_router
from routes.orders import router as orders_router
from routes.admin import router as admin_router
from routes.seller import router as seller_router
from routes.uploads import router as uploads_router

from utils.errors import MarketplaceError
from utils.indexes import ensure_indexes

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("fanforge")

validate_production_env()
logger.info("ENV: %s", ENV)

app = FastAPI(
    title="FanForge API",
    version="1.0.0",
    docs_url=None if ENV == "production" else "/docs",
    redoc_url=None if ENV == "production" else "/redoc",
    openapi_url=None if ENV == "production" else "/openapi.json",
)

DEV_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ALLOWED_ORIGINS if o.strip()] or DEV_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# ERRORS
# -----------------------------

@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

for router in (products_router, orders_router, seller_router, admin_router, uploads_router):
    app.include_router(router, prefix="/api")

# -----------------------------
# HEALTH CHECKS
# -----------------------------

@app.get("/api/health")
async def health():
    return {"status": "ok"}

@app.get("/api/health/db")
async def health_db():
    db = get_db()
    await db.command("ping")
    return {"status": "mongodb connected"}

# -----------------------------
# STARTUP
# -----------------------------

@app.on_event("startup")
async def create_indexes():
    await ensure_indexes(get_db())
