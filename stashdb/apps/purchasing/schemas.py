from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stashdb.apps.inventory import schemas as inventory_schemas

from . import models


class PurchaseOrderLineCreate(BaseModel):
    part_id: int
    quantity_ordered: int = Field(..., gt=0)
    unit_cost: Decimal = Field(..., ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    expected_delivery_date: Optional[date] = None
    line_items: List[PurchaseOrderLineCreate] = Field(default_factory=list)


class PurchaseOrderLineRead(BaseModel):
    id: int
    part_id: int
    part_number: Optional[str] = None
    part_description: Optional[str] = None
    quantity_ordered: int
    quantity_received: int
    remaining: int
    unit_cost: Decimal

    class Config:
        from_attributes = True


class PurchaseOrderRead(BaseModel):
    id: int
    po_number: str
    supplier_id: int
    supplier_name: Optional[str] = None
    status: models.PurchaseOrderStatusEnum
    expected_delivery_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    line_items: List[PurchaseOrderLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PurchaseOrderStatusUpdate(BaseModel):
    status: models.PurchaseOrderStatusEnum


class ReceiveItem(BaseModel):
    line_item_id: int
    quantity_received: int


class PurchaseOrderReceiveRequest(BaseModel):
    location_id: int
    items: List[ReceiveItem] = Field(default_factory=list)


class PurchaseOrderReceiveResult(BaseModel):
    purchase_order_id: int
    po_number: str
    po_status: models.PurchaseOrderStatusEnum
    received: List[inventory_schemas.ReceiveResult] = Field(default_factory=list)
