"""
Sale Service.

Sale lookups, field corrections with per-field edit history, and bill
number assignment.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.exceptions import PreconditionError, ResourceNotFoundError, ValidationError
from coldstore_ledger.app.domain.ledger.charges import money
from coldstore_ledger.app.domain.ledger.parties import sale_party_key
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.edit_history import SaleEditHistory
from coldstore_ledger.app.models.enums import BillType
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, record_sale_edits, snapshot
from coldstore_ledger.app.services.locking import lock_parties, lock_sale

logger = logging.getLogger("coldstore.sales")

EXTRA_DUE_FIELDS = ("extra_due_hammali_merchant", "extra_due_grading_merchant", "extra_due_other_merchant")
CORRECTABLE_FIELDS = {"buyer_name", "price_per_kg", "net_weight_kg", "payment_mode", *EXTRA_DUE_FIELDS}

BILL_ATTRIBUTES = {
    BillType.COLD_STORAGE: "cold_storage_bill_number",
    BillType.SALES: "sales_bill_number",
}


class SaleService:

    @staticmethod
    async def get_sale(db: AsyncSession, cold_storage_id: int, sale_id: int) -> Sale:
        sale = (await db.execute(
            select(Sale).where(Sale.id == sale_id, Sale.cold_storage_id == cold_storage_id)
        )).scalar_one_or_none()
        if not sale:
            raise ResourceNotFoundError("Sale", sale_id)
        return sale

    @staticmethod
    async def update_sale(db: AsyncSession, caller, sale_id: int, changes: Dict[str, Any]) -> Sale:
        """
        Correct descriptive sale fields.

        Changing the buyer moves the sale to another party; both the old and
        the new party are replayed. extra_due_to_merchant is always the sum
        of its three parts.
        """
        unknown = sorted(set(changes) - CORRECTABLE_FIELDS)
        if unknown:
            raise ValidationError("These sale fields cannot be corrected", details={"fields": unknown})

        sale = await lock_sale(db, caller.cold_storage_id, sale_id)
        if sale.is_reversed:
            raise PreconditionError("Cannot edit a reversed sale", details={"sale_id": sale.id})

        before = snapshot(sale)
        edits = []
        for field, value in changes.items():
            if field == "buyer_name":
                value = (value or "").strip() or None
            if field in EXTRA_DUE_FIELDS and value is not None:
                value = money(value)
            old = getattr(sale, field)
            if old != value:
                edits.append((field, old, value))

        if not edits:
            return sale

        old_party = sale.party_key
        for field, _, value in edits:
            setattr(sale, field, value)

        if any(field in EXTRA_DUE_FIELDS for field, _, _ in edits):
            total = money(sum(getattr(sale, f) or 0.0 for f in EXTRA_DUE_FIELDS))
            if total != sale.extra_due_to_merchant:
                edits.append(("extra_due_to_merchant", sale.extra_due_to_merchant, total))
                sale.extra_due_to_merchant = total

        new_party = sale_party_key(sale.farmer_key, sale.buyer_name, sale.is_self_sale)
        if new_party != old_party:
            if sale.transferred_amount > 0 or sale.discount_amount > 0:
                raise PreconditionError(
                    "Cannot change the buyer of a sale with transfers or discounts",
                    details={"sale_id": sale.id}
                )
            await lock_parties(db, caller.cold_storage_id, [old_party, new_party])
            sale.party_key = new_party
            await db.flush()
            await SettlementService.recompute_parties(db, caller.cold_storage_id, [old_party, new_party])
        else:
            await db.flush()

        await record_sale_edits(db, sale.id, edits, changed_by=caller.user_id)
        await log_event(
            db, AuditAction.SALE_UPDATED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="sale", entity_id=sale.id, before=before, after=snapshot(sale),
        )
        logger.info("Sale %s corrected: %s", sale.id, [field for field, _, _ in edits])
        return sale

    @staticmethod
    async def get_edit_history(db: AsyncSession, cold_storage_id: int, sale_id: int) -> List[SaleEditHistory]:
        await SaleService.get_sale(db, cold_storage_id, sale_id)
        result = await db.execute(
            select(SaleEditHistory)
            .where(SaleEditHistory.sale_id == sale_id)
            .order_by(SaleEditHistory.changed_at, SaleEditHistory.id)
        )
        return result.scalars().all()

    @staticmethod
    async def assign_bill_number(db: AsyncSession, caller, sale_id: int, bill_type: BillType) -> int:
        """Idempotent: a sale keeps the first bill number it was given."""
        sale = await lock_sale(db, caller.cold_storage_id, sale_id)
        attribute = BILL_ATTRIBUTES[bill_type]
        number = getattr(sale, attribute)
        if number is None:
            number = await sequences.next_bill_number(db, caller.cold_storage_id, bill_type.value)
            setattr(sale, attribute, number)
            await db.flush()
            await log_event(
                db, AuditAction.BILL_NUMBER_ASSIGNED,
                actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
                entity_type="sale", entity_id=sale.id,
                metadata={"bill_type": bill_type.value, "bill_number": number},
            )
        return number
