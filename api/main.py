"""
QR Menu API — FastAPI backend
Cafe menus behind QR codes, gated by trial / Basic / Pro subscriptions.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from db.database import engine, init_db
from logging_config import setup_logging
from routers import auth, cafes, categories, menu_items, offers, tags, subscription, webhooks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    setup_logging()
    if settings.INIT_DB_ON_START:
        await init_db()
        logger.info("Database tables ensured")
    logger.info("QR Menu API starting...")
    yield
    # Shutdown
    await engine.dispose()
    logger.info("QR Menu API shut down.")


app = FastAPI(
    title="QR Menu API",
    description="Digital cafe menus with subscription-gated administration",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(cafes.router, prefix="/api/cafes", tags=["Cafes"])
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
app.include_router(menu_items.router, prefix="/api/menu-items", tags=["Menu Items"])
app.include_router(offers.router, prefix="/api/offers", tags=["Offers"])
app.include_router(tags.router, prefix="/api/tags", tags=["Tags"])
app.include_router(subscription.router, prefix="/api/subscription", tags=["Subscription"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["Razorpay Webhooks"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "QR Menu API"}
