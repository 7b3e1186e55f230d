import logging

from fastapi import FastAPI
from .settings import settings
from .routes.invoices import router as invoices_router
from .routes.extract import router as extract_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Invoice Ledger API",
    version="0.1.0",
    description="Recalculation and reconciliation of supplier invoice totals."
)

app.include_router(invoices_router)
app.include_router(extract_router)


@app.get("/config", tags=["config"])
def get_config():
    """Engine constants an editor may display next to the totals."""
    return {
        "default_tax_rate": float(settings.DEFAULT_TAX_RATE),
        "amount_tolerance": float(settings.AMOUNT_TOLERANCE),
    }
