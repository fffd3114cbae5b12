"""
Payment Connector — commerce checkout ↔ Adyen Checkout API.

Bridges the commerce platform's carts, orders and payments with the payment
processor: outbound checkout and modification requests, and inbound webhook
notifications reconciled into each payment's transaction ledger.

Start the server:
    uvicorn connector.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from connector.api.dependencies import get_processor
from connector.api.notifications import router as notifications_router
from connector.api.operations import router as operations_router
from connector.api.payments import router as payments_router
from connector.api.stored_payment_methods import router as stored_payment_methods_router
from connector.config import settings
from connector.database import dispose_db, init_db
from connector.engine.errors import ConnectorError
from connector.providers.checkout_client import AdyenCheckoutClient

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("connector.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup, release connections on shutdown."""
    await init_db()
    yield
    processor = get_processor()
    if isinstance(processor, AdyenCheckoutClient):
        await processor.close()
    await dispose_db()


app = FastAPI(
    title="Payment Connector",
    description=(
        "Connects commerce carts and payments to the Adyen Checkout API: sessions, payments, "
        "captures, cancellations, refunds and reversals, plus webhook notifications reconciled "
        "into an idempotent transaction ledger."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ConnectorError)
async def connector_error_handler(request: Request, exc: ConnectorError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message, "details": exc.details},
    )


app.include_router(notifications_router)
app.include_router(operations_router)
app.include_router(payments_router)
app.include_router(stored_payment_methods_router)
