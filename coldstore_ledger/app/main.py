"""
FastAPI Application Entry Point.

This is the main application file for the Cold Storage Ledger service.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.exceptions import RequestValidationError
from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.api.v1.router import router as api_v1_router
from coldstore_ledger.app.core.jwt import create_caller_token
from coldstore_ledger.app.core.observability import ObservabilityMiddleware, configure_logging
from coldstore_ledger.app.db.session import engine, Base, get_db
from coldstore_ledger.app.models.enums import AccessType
from coldstore_ledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from coldstore_ledger.app.models.cold_storage import ColdStorage, Chamber  # noqa: F401
from coldstore_ledger.app.models.lot import Lot  # noqa: F401
from coldstore_ledger.app.models.sale import Sale  # noqa: F401
from coldstore_ledger.app.models.exit_history import ExitHistory  # noqa: F401
from coldstore_ledger.app.models.cash_receipt import CashReceipt  # noqa: F401
from coldstore_ledger.app.models.expense import Expense  # noqa: F401
from coldstore_ledger.app.models.cash_transfer import CashTransfer  # noqa: F401
from coldstore_ledger.app.models.discount import Discount, DiscountAllocation  # noqa: F401
from coldstore_ledger.app.models.transfer import Transfer, TransferLeg, TransferredDue  # noqa: F401
from coldstore_ledger.app.models.farmer_receivable import FarmerReceivable  # noqa: F401
from coldstore_ledger.app.models.payment_allocation import PaymentAllocation  # noqa: F401
from coldstore_ledger.app.models.edit_history import LotEditHistory, SaleEditHistory  # noqa: F401
from coldstore_ledger.app.models.audit_log import AuditLog  # noqa: F401
from coldstore_ledger.app.models.asset import Asset  # noqa: F401
from coldstore_ledger.app.models.liability import Liability  # noqa: F401
from coldstore_ledger.app.models.sequence_counter import SequenceCounter  # noqa: F401
from coldstore_ledger.app.models.party_lock import PartyLock  # noqa: F401

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Settlement and ledger engine for cold storage warehouses",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus a round trip to the ledger database."""
    await db.execute(text("SELECT 1"))
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "database": db.get_bind().dialect.name,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.post("/auth/test-token", tags=["Authentication"])
async def generate_test_token(user_id: int = 1, cold_storage_id: int = 1, access_type: AccessType = AccessType.EDIT):
    """
    Generate a caller token for local development.

    Only available when debug is enabled.
    """
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    token = create_caller_token(user_id, cold_storage_id, access_type.value, subject=f"user-{user_id}")
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": user_id,
        "cold_storage_id": cold_storage_id,
        "access_type": access_type.value,
    }
