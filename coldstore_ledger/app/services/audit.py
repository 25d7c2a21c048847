"""
Audit Trail Recorder.

Appends AuditLog, LotEditHistory and SaleEditHistory rows. All writes are
flushed into the caller's transaction, never committed here, so an aborted
mutation leaves no audit trace.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, inspect

from coldstore_ledger.app.models.audit_log import AuditLog
from coldstore_ledger.app.models.edit_history import LotEditHistory, SaleEditHistory
from coldstore_ledger.app.models.enums import LotChangeType


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    LOT_CREATED = "LOT_CREATED"
    LOT_UPDATED = "LOT_UPDATED"
    LOT_UP_FOR_SALE = "LOT_UP_FOR_SALE"
    SALE_RECORDED = "SALE_RECORDED"
    SALE_UPDATED = "SALE_UPDATED"
    BILL_NUMBER_ASSIGNED = "BILL_NUMBER_ASSIGNED"
    EXIT_RECORDED = "EXIT_RECORDED"
    RECEIPT_RECORDED = "RECEIPT_RECORDED"
    EXPENSE_RECORDED = "EXPENSE_RECORDED"
    CASH_TRANSFER_RECORDED = "CASH_TRANSFER_RECORDED"
    DISCOUNT_RECORDED = "DISCOUNT_RECORDED"
    RECEIVABLE_RECORDED = "RECEIVABLE_RECORDED"
    TRANSFER_RECORDED = "TRANSFER_RECORDED"
    ENTITY_REVERSED = "ENTITY_REVERSED"
    SEASON_RESET = "SEASON_RESET"
    ASSET_RECORDED = "ASSET_RECORDED"
    LIABILITY_RECORDED = "LIABILITY_RECORDED"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(instance: Any) -> Dict[str, Any]:
    """Column values of a mapped instance as a JSON-safe dict."""
    mapper = inspect(instance).mapper
    return {attr.key: _jsonable(getattr(instance, attr.key)) for attr in mapper.column_attrs}


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    cold_storage_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Append an audit event to the current transaction.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        cold_storage_id: Tenant the entity belongs to
        entity_type: Kind of record affected (lot, sale, receipt, ...)
        entity_id: ID of the record affected
        before: Snapshot before the change
        after: Snapshot after the change
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        cold_storage_id=cold_storage_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before=before,
        after=after,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def record_lot_change(
    db: AsyncSession,
    lot_id: int,
    cold_storage_id: int,
    change_type: LotChangeType,
    previous_data: Optional[Dict[str, Any]],
    new_data: Optional[Dict[str, Any]],
    changed_by: Optional[int] = None,
    sale_id: Optional[int] = None,
    quantity: Optional[int] = None,
) -> LotEditHistory:
    entry = LotEditHistory(
        lot_id=lot_id,
        cold_storage_id=cold_storage_id,
        sale_id=sale_id,
        change_type=change_type,
        quantity=quantity,
        previous_data=previous_data,
        new_data=new_data,
        changed_by=changed_by,
    )
    db.add(entry)
    await db.flush()
    return entry


async def record_sale_edits(
    db: AsyncSession,
    sale_id: int,
    changes: Iterable[tuple],
    changed_by: Optional[int] = None,
) -> list[SaleEditHistory]:
    """One SaleEditHistory row per (field, old, new) triple."""
    entries = [
        SaleEditHistory(
            sale_id=sale_id,
            field_changed=field,
            old_value=None if old is None else str(_jsonable(old)),
            new_value=None if new is None else str(_jsonable(new)),
            changed_by=changed_by,
        )
        for field, old, new in changes
    ]
    db.add_all(entries)
    await db.flush()
    return entries


async def get_audit_trail(
    db: AsyncSession,
    cold_storage_id: int,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = (
        select(AuditLog)
        .where(AuditLog.cold_storage_id == cold_storage_id)
        .order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    )

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
