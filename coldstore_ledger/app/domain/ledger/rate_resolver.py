"""
Rate Resolver.

Responsible for determining the cold charge and hammali that apply to a sale.
Follows priority:
1. Custom rates passed by the caller
2. Cold storage rates for the lot's bag type (wafer/ration -> wafer, seed -> seed)
"""

from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coldstore_ledger.app.core.exceptions import ResourceNotFoundError
from coldstore_ledger.app.models.cold_storage import ColdStorage
from coldstore_ledger.app.models.enums import BagType, ChargeUnit


@dataclass(frozen=True)
class ResolvedRates:
    charge_unit: ChargeUnit
    cold_charge: float
    hammali: float

    @property
    def price_per_bag(self) -> float:
        return round(self.cold_charge + self.hammali, 2)


class RateResolver:

    @staticmethod
    async def load_cold_storage(db: AsyncSession, cold_storage_id: int, for_update: bool = False) -> ColdStorage:
        query = select(ColdStorage).where(ColdStorage.id == cold_storage_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        cold_storage = result.scalar_one_or_none()
        if not cold_storage:
            raise ResourceNotFoundError("Cold storage", cold_storage_id)
        return cold_storage

    @staticmethod
    def resolve(
        cold_storage: ColdStorage,
        bag_type: BagType,
        custom_cold_charge: Optional[float] = None,
        custom_hammali: Optional[float] = None,
    ) -> ResolvedRates:
        if bag_type == BagType.SEED:
            cold_charge, hammali = cold_storage.seed_cold_charge, cold_storage.seed_hammali
        else:
            cold_charge, hammali = cold_storage.wafer_cold_charge, cold_storage.wafer_hammali

        if custom_cold_charge is not None:
            cold_charge = custom_cold_charge
        if custom_hammali is not None:
            hammali = custom_hammali

        return ResolvedRates(
            charge_unit=cold_storage.charge_unit,
            cold_charge=cold_charge,
            hammali=hammali,
        )
