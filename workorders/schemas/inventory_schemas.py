# workorders/schemas/inventory_schemas.py
from pydantic import BaseModel, Field
from typing import Optional


class InventoryItemCreate(BaseModel):
    name: str
    sku: Optional[str] = None
    unit: str = "pcs"
    price: float = Field(default=0.0, ge=0)
    quantity: float = Field(default=0.0, ge=0)
    min_stock_threshold: int = 0


class InventoryItemOut(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    unit: str
    price: float
    quantity: float
    min_stock_threshold: int

    class Config:
        from_attributes = True
