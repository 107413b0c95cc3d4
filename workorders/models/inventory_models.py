from sqlalchemy import (
    Column, Integer, String, Float, Boolean, CheckConstraint, DateTime, func
)
from workorders.core.db import Base


# --------------------------
# Inventory Item
# --------------------------
class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    sku = Column(String(64), nullable=True, unique=True)
    unit = Column(String(32), nullable=False, default="pcs")
    price = Column(Float, default=0.0, nullable=False)
    quantity = Column(Float, default=0.0, nullable=False)
    min_stock_threshold = Column(Integer, default=0, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)  # False = active, True = deleted

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(price >= 0, name="check_inventory_price_non_negative"),
        CheckConstraint(quantity >= 0, name="check_inventory_quantity_non_negative"),
    )

    def __repr__(self):
        return f"<InventoryItem(id={self.id}, name='{self.name}', quantity={self.quantity})>"
