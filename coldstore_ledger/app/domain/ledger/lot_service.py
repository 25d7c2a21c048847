"""
Lot Service (Domain Logic).

The lot state machine: entry, partial sale, final sale, up-for-sale toggle,
non-financial edits, sale reversal and season reset. Every transition
appends a LotEditHistory row and an audit event, and ends with a
settlement replay of the party that owes the sale.

Transactions are owned by the caller; this service only flushes.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.exceptions import (
    ValidationError, PreconditionError, ResourceNotFoundError
)
from coldstore_ledger.app.core.timeutil import utcnow, to_naive_utc
from coldstore_ledger.app.domain.ledger.charges import compute_sale_charge, money, payment_terms_from
from coldstore_ledger.app.domain.ledger.parties import farmer_key, sale_party_key
from coldstore_ledger.app.domain.ledger.rate_resolver import RateResolver
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.cold_storage import Chamber
from coldstore_ledger.app.models.edit_history import LotEditHistory
from coldstore_ledger.app.models.enums import LotChangeType, SaleStatus, SaleType, ChargeBasis
from coldstore_ledger.app.models.exit_history import ExitHistory
from coldstore_ledger.app.models.lot import Lot
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, record_lot_change, snapshot
from coldstore_ledger.app.services.locking import lock_lot, lock_parties

logger = logging.getLogger("coldstore.lots")

EDITABLE_FIELDS = {
    "contact_number", "village", "tehsil", "district", "state",
    "chamber_id", "floor", "position",
    "bag_type", "quality", "potato_size", "potato_type", "remarks",
}

FINANCIAL_FIELDS = {
    "original_size", "remaining_size", "net_weight_kg",
    "total_paid_charge", "total_due_charge", "sale_status", "base_cold_charges_billed",
    "advance_deduction", "freight_deduction", "other_deduction",
    "entry_bill_number", "sold_at", "up_for_sale",
}


async def _get_chamber(db: AsyncSession, cold_storage_id: int, chamber_id: int, for_update: bool = False) -> Chamber:
    query = select(Chamber).where(Chamber.id == chamber_id, Chamber.cold_storage_id == cold_storage_id)
    if for_update:
        query = query.with_for_update()
    chamber = (await db.execute(query)).scalar_one_or_none()
    if not chamber:
        raise ResourceNotFoundError("Chamber", chamber_id)
    return chamber


class LotService:

    @staticmethod
    async def get_lot(db: AsyncSession, cold_storage_id: int, lot_id: int) -> Lot:
        result = await db.execute(
            select(Lot).where(Lot.id == lot_id, Lot.cold_storage_id == cold_storage_id)
        )
        lot = result.scalar_one_or_none()
        if not lot:
            raise ResourceNotFoundError("Lot", lot_id)
        return lot

    @staticmethod
    async def create_lot(db: AsyncSession, caller, payload) -> Lot:
        """Record a lot at entry; remaining_size starts at original_size."""
        chamber = await _get_chamber(db, caller.cold_storage_id, payload.chamber_id, for_update=True)

        data = payload.model_dump()
        lot_no = data.pop("lot_no", None)
        if not lot_no:
            cold_storage = await RateResolver.load_cold_storage(db, caller.cold_storage_id, for_update=True)
            number = max(cold_storage.next_lot_number or 1, cold_storage.starting_lot_number or 1)
            cold_storage.next_lot_number = number + 1
            lot_no = str(number)

        lot = Lot(
            cold_storage_id=caller.cold_storage_id,
            lot_no=lot_no,
            remaining_size=payload.original_size,
            sale_status=SaleStatus.STORED,
            up_for_sale=False,
            base_cold_charges_billed=0,
            total_paid_charge=0.0,
            total_due_charge=0.0,
            **data,
        )
        db.add(lot)
        chamber.current_fill = (chamber.current_fill or 0) + payload.original_size
        await db.flush()

        await log_event(
            db, AuditAction.LOT_CREATED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="lot", entity_id=lot.id, after=snapshot(lot),
        )
        logger.info("Lot %s created: %d bags in chamber %s", lot.lot_no, lot.original_size, chamber.name)
        return lot

    @staticmethod
    async def edit_lot(db: AsyncSession, caller, lot_id: int, changes: Dict[str, Any]) -> Lot:
        """
        Edit non-financial fields.

        Raises:
            ValidationError: a financial or unknown field is in the payload
        """
        financial = sorted(set(changes) & FINANCIAL_FIELDS)
        if financial:
            raise ValidationError("Financial fields cannot be edited", details={"fields": financial})
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError("Unknown lot fields", details={"fields": unknown})

        lot = await lock_lot(db, caller.cold_storage_id, lot_id)
        previous = snapshot(lot)

        new_chamber_id = changes.get("chamber_id")
        if new_chamber_id is not None and new_chamber_id != lot.chamber_id:
            old_chamber = await _get_chamber(db, caller.cold_storage_id, lot.chamber_id, for_update=True)
            new_chamber = await _get_chamber(db, caller.cold_storage_id, new_chamber_id, for_update=True)
            old_chamber.current_fill = max((old_chamber.current_fill or 0) - lot.remaining_size, 0)
            new_chamber.current_fill = (new_chamber.current_fill or 0) + lot.remaining_size

        for field, value in changes.items():
            if field == "chamber_id" and value is None:
                continue
            setattr(lot, field, value)
        await db.flush()

        current = snapshot(lot)
        await record_lot_change(
            db, lot.id, caller.cold_storage_id, LotChangeType.EDIT, previous, current,
            changed_by=caller.user_id,
        )
        await log_event(
            db, AuditAction.LOT_UPDATED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="lot", entity_id=lot.id, before=previous, after=current,
        )
        return lot

    @staticmethod
    async def set_up_for_sale(db: AsyncSession, caller, lot_id: int, up_for_sale: bool) -> Lot:
        lot = await lock_lot(db, caller.cold_storage_id, lot_id)
        if lot.sale_status == SaleStatus.SOLD or lot.remaining_size <= 0:
            raise PreconditionError("Only available lots can be marked up for sale", details={"lot_id": lot.id})

        previous = snapshot(lot)
        lot.up_for_sale = up_for_sale
        await db.flush()
        current = snapshot(lot)

        await record_lot_change(
            db, lot.id, caller.cold_storage_id, LotChangeType.UP_FOR_SALE, previous, current,
            changed_by=caller.user_id,
        )
        await log_event(
            db, AuditAction.LOT_UP_FOR_SALE,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="lot", entity_id=lot.id, before=previous, after=current,
        )
        return lot

    @staticmethod
    async def record_partial_sale(db: AsyncSession, caller, lot_id: int, payload) -> Sale:
        """Sell `payload.quantity` bags from an available lot."""
        return await LotService._sell(
            db, caller, lot_id, payload,
            quantity=payload.quantity,
            sale_type=SaleType.PARTIAL,
        )

    @staticmethod
    async def finalize_sale(db: AsyncSession, caller, lot_id: int, payload) -> Sale:
        """
        Sell every remaining bag in one action.

        Raises:
            PreconditionError: the lot is already sold or has nothing left
        """
        return await LotService._sell(
            db, caller, lot_id, payload,
            quantity=None,
            sale_type=SaleType.FULL,
        )

    @staticmethod
    async def _sell(db: AsyncSession, caller, lot_id: int, payload, quantity: Optional[int], sale_type: SaleType) -> Sale:
        lot = await lock_lot(db, caller.cold_storage_id, lot_id)

        if sale_type == SaleType.FULL:
            if lot.sale_status == SaleStatus.SOLD or lot.remaining_size <= 0:
                raise PreconditionError("Lot is already sold", details={"lot_id": lot.id})
            quantity = lot.remaining_size
        elif lot.sale_status == SaleStatus.SOLD:
            raise PreconditionError("Lot is already sold", details={"lot_id": lot.id})

        cold_storage = await RateResolver.load_cold_storage(db, caller.cold_storage_id)
        rates = RateResolver.resolve(
            cold_storage, lot.bag_type, payload.custom_cold_charge, payload.custom_hammali
        )

        charge = compute_sale_charge(
            charge_unit=rates.charge_unit,
            charge_basis=payload.charge_basis,
            quantity=quantity,
            remaining_size=lot.remaining_size,
            original_size=lot.original_size,
            base_cold_charges_billed=lot.base_cold_charges_billed,
            cold_charge=rates.cold_charge,
            hammali=rates.hammali,
            net_weight_kg=lot.net_weight_kg,
            kata_charges=payload.kata_charges,
            extra_hammali=payload.extra_hammali,
            grading_charges=payload.grading_charges,
            advance_deduction=lot.advance_deduction,
            freight_deduction=lot.freight_deduction,
            other_deduction=lot.other_deduction,
        )
        extras = {
            "extra_due_hammali_merchant": payload.extra_due_hammali_merchant,
            "extra_due_grading_merchant": payload.extra_due_grading_merchant,
            "extra_due_other_merchant": payload.extra_due_other_merchant,
        }
        negative = {k: v for k, v in extras.items() if v < 0}
        if negative:
            raise ValidationError("Merchant extras cannot be negative", details=negative)

        terms = payment_terms_from(payload.payment_status, payload.paid_amount, payload.payment_mode)
        total = charge.total
        paid, due = terms.split(total)

        farmer = farmer_key(lot.farmer_name, lot.village, lot.contact_number)
        party = sale_party_key(farmer, payload.buyer_name, payload.is_self_sale)
        await lock_parties(db, caller.cold_storage_id, [party])

        chamber = await _get_chamber(db, caller.cold_storage_id, lot.chamber_id, for_update=True)
        previous = snapshot(lot)

        sale = Sale(
            cold_storage_id=caller.cold_storage_id,
            lot_id=lot.id,
            lot_no=lot.lot_no,
            farmer_name=lot.farmer_name,
            contact_number=lot.contact_number,
            village=lot.village,
            tehsil=lot.tehsil,
            district=lot.district,
            state=lot.state,
            chamber_name=chamber.name,
            floor=lot.floor,
            position=lot.position,
            bag_type=lot.bag_type,
            quality=lot.quality,
            potato_size=lot.potato_size,
            original_lot_size=lot.original_size,
            net_weight_kg=lot.net_weight_kg,
            sale_type=sale_type,
            quantity_sold=quantity,
            remaining_size_at_sale=lot.remaining_size,
            price_per_kg=payload.price_per_kg,
            cold_charge=rates.cold_charge,
            hammali=rates.hammali,
            price_per_bag=rates.price_per_bag,
            charge_basis=payload.charge_basis,
            charge_unit_at_sale=rates.charge_unit,
            base_charge_amount=charge.base_charge,
            kata_charges=charge.kata_charges,
            extra_hammali=charge.extra_hammali,
            grading_charges=charge.grading_charges,
            entry_deduction_amount=charge.entry_deduction,
            cold_storage_charge=total,
            initial_paid_amount=paid,
            paid_amount=paid,
            due_amount=due,
            payment_status=terms.status,
            payment_mode=terms.mode,
            buyer_name=(payload.buyer_name or "").strip() or None,
            is_self_sale=payload.is_self_sale,
            party_key=party,
            farmer_key=farmer,
            extra_due_to_merchant=money(sum(extras.values())),
            **{k: money(v) for k, v in extras.items()},
        )
        sold_at = to_naive_utc(payload.sold_at)
        if sold_at:
            sale.sold_at = sold_at
        db.add(sale)

        lot.remaining_size -= quantity
        lot.total_paid_charge = money(lot.total_paid_charge + paid)
        lot.total_due_charge = money(lot.total_due_charge + due)
        if charge.marks_base_billed:
            lot.base_cold_charges_billed = 1
        if lot.remaining_size == 0:
            lot.sale_status = SaleStatus.SOLD
            lot.sold_at = sold_at or utcnow()
            lot.up_for_sale = False
        else:
            lot.sale_status = SaleStatus.PARTIAL
        chamber.current_fill = max((chamber.current_fill or 0) - quantity, 0)
        await db.flush()

        change_type = LotChangeType.FINAL_SALE if sale_type == SaleType.FULL else LotChangeType.PARTIAL_SALE
        await record_lot_change(
            db, lot.id, caller.cold_storage_id, change_type, previous, snapshot(lot),
            changed_by=caller.user_id, sale_id=sale.id, quantity=quantity,
        )

        # Unapplied receipt money of this party settles the new due
        await SettlementService.recompute_party(db, caller.cold_storage_id, party)

        await log_event(
            db, AuditAction.SALE_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="sale", entity_id=sale.id, after=snapshot(sale),
            metadata={"lot_id": lot.id, "sale_type": sale_type.value},
        )
        logger.info(
            "Sale %s on lot %s: %d bags, charge=%.2f paid=%.2f due=%.2f",
            sale.id, lot.lot_no, quantity, total, sale.paid_amount, sale.due_amount
        )
        return sale

    @staticmethod
    async def reverse_sale(db: AsyncSession, caller, sale: Sale) -> Sale:
        """
        Undo a sale: bags go back to the lot and its party is replayed.

        Raises:
            PreconditionError: the sale still has exits, transfers or
                discounts against it, or it is a totalRemaining sale with a
                later sale on the same lot
        """
        if sale.transferred_amount > 0 or sale.discount_amount > 0:
            raise PreconditionError(
                "Reverse the transfers and discounts on this sale first",
                details={"sale_id": sale.id}
            )

        active_exits = (await db.execute(
            select(func.count(ExitHistory.id)).where(
                ExitHistory.sale_id == sale.id, ExitHistory.is_reversed == False  # noqa: E712
            )
        )).scalar_one()
        if active_exits:
            raise PreconditionError("Reverse the exits of this sale first", details={"sale_id": sale.id})

        lot = None
        if sale.lot_id:
            lot = await lock_lot(db, caller.cold_storage_id, sale.lot_id)
            if sale.charge_basis == ChargeBasis.TOTAL_REMAINING:
                later = (await db.execute(
                    select(func.count(Sale.id)).where(
                        Sale.lot_id == lot.id,
                        Sale.is_reversed == False,  # noqa: E712
                        Sale.id > sale.id,
                    )
                )).scalar_one()
                if later:
                    raise PreconditionError(
                        "A totalRemaining sale cannot be reversed while later sales exist",
                        details={"sale_id": sale.id}
                    )

        await lock_parties(db, caller.cold_storage_id, [sale.party_key])
        sale.is_reversed = True
        sale.reversed_at = utcnow()

        if lot is not None:
            previous = snapshot(lot)
            chamber = await _get_chamber(db, caller.cold_storage_id, lot.chamber_id, for_update=True)
            lot.remaining_size += sale.quantity_sold
            chamber.current_fill = (chamber.current_fill or 0) + sale.quantity_sold
            if sale.charge_basis == ChargeBasis.TOTAL_REMAINING and sale.base_charge_amount > 0:
                lot.base_cold_charges_billed = 0
            other_sales = (await db.execute(
                select(func.count(Sale.id)).where(
                    Sale.lot_id == lot.id, Sale.is_reversed == False, Sale.id != sale.id  # noqa: E712
                )
            )).scalar_one()
            lot.sale_status = SaleStatus.PARTIAL if other_sales else SaleStatus.STORED
            lot.sold_at = None
            await db.flush()
            await record_lot_change(
                db, lot.id, caller.cold_storage_id, LotChangeType.SALE_REVERSED, previous, snapshot(lot),
                changed_by=caller.user_id, sale_id=sale.id, quantity=sale.quantity_sold,
            )

        await SettlementService.recompute_party(db, caller.cold_storage_id, sale.party_key)
        await SettlementService.refresh_lot_totals(db, [sale.lot_id])
        return sale

    @staticmethod
    async def get_history(db: AsyncSession, cold_storage_id: int, lot_id: int) -> List[LotEditHistory]:
        await LotService.get_lot(db, cold_storage_id, lot_id)
        result = await db.execute(
            select(LotEditHistory)
            .where(LotEditHistory.lot_id == lot_id)
            .order_by(LotEditHistory.changed_at, LotEditHistory.id)
        )
        return result.scalars().all()

    @staticmethod
    async def reset_check(db: AsyncSession, cold_storage_id: int) -> dict:
        row = (await db.execute(
            select(
                func.count(Lot.id),
                func.coalesce(func.sum(Lot.remaining_size), 0),
                func.count(Lot.id).filter(Lot.remaining_size > 0),
            ).where(Lot.cold_storage_id == cold_storage_id)
        )).one()
        total_lots, remaining_bags, lots_with_stock = row
        return {
            "can_reset": lots_with_stock == 0,
            "total_lots": total_lots,
            "lots_with_stock": lots_with_stock,
            "remaining_bags": int(remaining_bags),
        }

    @staticmethod
    async def reset_season(db: AsyncSession, caller) -> dict:
        """
        Clear all lots for a new season. Not reversible.

        Raises:
            PreconditionError: any lot still has bags in storage
        """
        cold_storage = await RateResolver.load_cold_storage(db, caller.cold_storage_id, for_update=True)
        check = await LotService.reset_check(db, caller.cold_storage_id)
        if not check["can_reset"]:
            raise PreconditionError(
                "Season reset requires every lot to be empty",
                details={"lots_with_stock": check["lots_with_stock"], "remaining_bags": check["remaining_bags"]}
            )

        deleted = await db.execute(delete(Lot).where(Lot.cold_storage_id == caller.cold_storage_id))
        cleared = await db.execute(
            update(Chamber).where(Chamber.cold_storage_id == caller.cold_storage_id).values(current_fill=0)
        )
        for attribute in sequences.BILL_COUNTERS.values():
            setattr(cold_storage, attribute, 1)
        cold_storage.next_lot_number = cold_storage.starting_lot_number or 1
        await db.flush()

        summary = {"lots_deleted": deleted.rowcount, "chambers_cleared": cleared.rowcount}
        await log_event(
            db, AuditAction.SEASON_RESET,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="cold_storage", entity_id=caller.cold_storage_id, metadata=summary,
        )
        logger.info("Season reset for cold storage %s: %s", caller.cold_storage_id, summary)
        return summary

    @staticmethod
    async def assign_entry_bill_number(db: AsyncSession, caller, lot_id: int) -> Lot:
        """Entry bill numbers are assigned on first request and never change."""
        lot = await lock_lot(db, caller.cold_storage_id, lot_id)
        if lot.entry_bill_number is None:
            lot.entry_bill_number = await sequences.next_bill_number(db, caller.cold_storage_id, "entry")
            await db.flush()
            await log_event(
                db, AuditAction.BILL_NUMBER_ASSIGNED,
                actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
                entity_type="lot", entity_id=lot.id,
                metadata={"bill_type": "entry", "bill_number": lot.entry_bill_number},
            )
        return lot
