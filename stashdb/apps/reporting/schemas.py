from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ValuationLayerRow(BaseModel):
    layer_id: int
    part_id: int
    part_number: str
    part_description: Optional[str] = None
    classification: Optional[str] = None
    location_id: int
    location_name: str
    source_type: str
    source_ref: Optional[str] = None
    original_qty: int
    remaining_qty: int
    unit_cost: Decimal
    total_value: Decimal
    receipt_date: datetime


class ValuationSummaryRow(BaseModel):
    part_id: int
    part_number: str
    part_description: Optional[str] = None
    location_id: int
    location_name: str
    total_qty: int
    total_value: Decimal


class ValuationReport(BaseModel):
    layers: List[ValuationLayerRow] = Field(default_factory=list)
    summary: List[ValuationSummaryRow] = Field(default_factory=list)
    grand_total: Decimal = Decimal("0.0000")


class LowStockRow(BaseModel):
    part_id: int
    part_number: str
    description: Optional[str] = None
    location_id: int
    location_name: str
    quantity_on_hand: int


class OpenPurchaseOrderRow(BaseModel):
    id: int
    po_number: str
    status: str
    supplier_name: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    total_value: Decimal
    total_qty_ordered: int
    total_qty_received: int


class LocationTypeTotal(BaseModel):
    type: str
    total_qty: int
    total_value: Decimal


class DashboardRead(BaseModel):
    inventory_by_type: List[LocationTypeTotal] = Field(default_factory=list)
    low_stock_alerts: List[LowStockRow] = Field(default_factory=list)
    open_purchase_orders: List[OpenPurchaseOrderRow] = Field(default_factory=list)
