"""
Main FastAPI application for the Tipster premium API.
Serves health, auth, users, payments, admin premium, gated content and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tipster.api.errors import register_exception_handlers
from tipster.api.routes import auth, content, health, payments, premium, users
from tipster.core.config import settings
from tipster.core.logging import configure_logging
from tipster.utils.metrics import router as metrics_router

configure_logging()

app = FastAPI(
    title="Tipster API",
    description="Premium memberships, payments and gated predictions",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(payments.router)
app.include_router(premium.router)
app.include_router(content.router)
app.include_router(metrics_router)
