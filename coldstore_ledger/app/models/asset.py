"""
Fixed asset register model.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Enum, ForeignKey
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import AssetCategory


class Asset(Base):
    """Depreciated on the written-down-value method."""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    category = Column(Enum(AssetCategory), nullable=False)
    original_cost = Column(Float, nullable=False)
    purchase_date = Column(Date, nullable=False)
    depreciation_rate = Column(Float, nullable=True)  # percent; None -> category default
    disposal_date = Column(Date, nullable=True)

    def __repr__(self):
        return f"<Asset(id={self.id}, name='{self.name}', category={self.category}, cost={self.original_cost})>"
