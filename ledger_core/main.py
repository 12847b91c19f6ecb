"""
Journal Ledger: FastAPI application.

This is the entry point for the application.
Logging is configured and all routers are registered here.
"""

from fastapi import FastAPI

from ledger_core.config import get_settings
from ledger_core.logging_config import configure_logging
from ledger_core.api.health import router as health_router
from ledger_core.api.journals import router as journals_router
from ledger_core.api.journals import numbers_router as journal_numbers_router
from ledger_core.api.reports import router as reports_router
from ledger_core.api.accounts import router as accounts_router

settings = get_settings()

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry journal ledger with trial balance reporting",
)

# Register routers
app.include_router(health_router)
app.include_router(journals_router)
app.include_router(journal_numbers_router)
app.include_router(reports_router)
app.include_router(accounts_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
