"""
Topup Desk — FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from topup_desk.config import get_settings
from topup_desk.logging_config import configure_logging
from topup_desk.api.health import router as health_router
from topup_desk.api.payments import router as payments_router
from topup_desk.api.requests import router as requests_router
from topup_desk.api.telegram import router as telegram_router
from topup_desk.api.users import router as users_router

settings = get_settings()
configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Deposits, ad account top-ups and admin review",
)

# Register routers
app.include_router(health_router)
app.include_router(payments_router)
app.include_router(users_router)
app.include_router(requests_router)
app.include_router(telegram_router)
