"""
Audit Trail API Endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.schemas.audit import AuditLogResponse
from coldstore_ledger.app.services.audit import get_audit_trail

router = APIRouter(prefix="/audit-log", tags=["Audit"])


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_log(
    entity_type: Optional[str] = Query(None, description="lot, sale, receipt, transfer, ..."),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None, description="e.g. ENTITY_REVERSED"),
    limit: int = Query(100, ge=1, le=500),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    """Most recent ledger events first."""
    return await get_audit_trail(
        db, caller.cold_storage_id,
        entity_type=entity_type, entity_id=entity_id, action=action, limit=limit,
    )
