"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from coldstore_ledger.app.api.v1.endpoints import (
    lots, season, sales, cashbook, transfers, reversals, dues, reports, audit
)

router = APIRouter()

# Lot entry and sales
router.include_router(lots.router)
router.include_router(season.router)

# Sale corrections, exits, bill numbers
router.include_router(sales.router)

# Cash book and dues
router.include_router(cashbook.router)
router.include_router(transfers.router)
router.include_router(reversals.router)
router.include_router(dues.router)

# Financial statements
router.include_router(reports.router)

# Audit trail
router.include_router(audit.router)
