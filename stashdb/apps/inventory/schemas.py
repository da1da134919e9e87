from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


# ----------------------------------------------------------------------
# FIFO layers
# ----------------------------------------------------------------------


class LayerConsumption(BaseModel):
    layer_id: int
    quantity_consumed: int
    unit_cost: Decimal
    cost: Decimal
    source_type: models.LayerSourceTypeEnum
    source_ref: Optional[str] = None
    created_at: datetime


class LayerMove(BaseModel):
    source_layer_id: int
    created_layer_id: int
    quantity_moved: int
    unit_cost: Decimal
    cost: Decimal


class FifoLayerRead(BaseModel):
    id: int
    part_id: int
    part_number: Optional[str] = None
    location_id: int
    location_name: Optional[str] = None
    source_type: models.LayerSourceTypeEnum
    source_ref: Optional[str] = None
    original_qty: int
    remaining_qty: int
    unit_cost: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------


class InventoryMovementBase(BaseModel):
    part_id: int
    quantity: int


class InventoryReceiveRequest(InventoryMovementBase):
    location_id: int
    unit_cost: Decimal
    po_ref: Optional[str] = None
    purchase_order_id: Optional[int] = None


class InventoryIssueRequest(InventoryMovementBase):
    location_id: int
    reason: Optional[str] = None
    target_ref: Optional[str] = None


class InventoryDisposeRequest(InventoryMovementBase):
    location_id: int
    reason: Optional[str] = None


class InventoryMoveRequest(InventoryMovementBase):
    from_location_id: int
    to_location_id: int


class InventoryReturnRequest(InventoryMovementBase):
    location_id: int
    unit_cost: Decimal
    reason: Optional[str] = None
    reference: Optional[str] = None


class InventoryAdjustRequest(BaseModel):
    part_id: int
    location_id: int
    new_quantity: int
    reason: Optional[str] = None
    unit_cost: Optional[Decimal] = None


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------


class ReceiveResult(BaseModel):
    transaction_id: int
    part_id: int
    part_number: str
    location_id: int
    location_name: str
    quantity_received: int
    unit_cost: Decimal
    total_cost: Decimal
    fifo_layer_created: FifoLayerRead


class ConsumptionResult(BaseModel):
    """Issue and Dispose outcome: what left the shelf and what it cost."""

    transaction_id: int
    transaction_type: str
    part_id: int
    part_number: str
    location_id: int
    location_name: str
    quantity: int
    total_cost: Decimal
    average_unit_cost: Decimal
    reason: Optional[str] = None
    target_ref: Optional[str] = None
    fifo_layers_consumed: List[LayerConsumption] = Field(default_factory=list)


class MoveResult(BaseModel):
    transaction_id: int
    part_id: int
    part_number: str
    from_location_id: int
    from_location: str
    to_location_id: int
    to_location: str
    quantity_moved: int
    total_cost: Decimal
    average_unit_cost: Decimal
    fifo_layers_moved: List[LayerMove] = Field(default_factory=list)


class ReturnResult(BaseModel):
    transaction_id: int
    part_id: int
    part_number: str
    location_id: int
    location_name: str
    quantity_returned: int
    unit_cost: Decimal
    total_cost: Decimal
    reason: Optional[str] = None
    reference: Optional[str] = None
    fifo_layer_created: FifoLayerRead


class AdjustResult(BaseModel):
    # transaction_id stays empty for a no-op adjustment
    transaction_id: Optional[int] = None
    part_id: int
    part_number: str
    location_id: int
    location_name: str
    before_quantity: int
    after_quantity: int
    delta: int
    reason: Optional[str] = None
    message: Optional[str] = None
    unit_cost: Optional[Decimal] = None
    total_cost: Decimal = Decimal("0.0000")
    average_unit_cost: Optional[Decimal] = None
    fifo_layers_consumed: List[LayerConsumption] = Field(default_factory=list)
    fifo_layer_created: Optional[FifoLayerRead] = None


# ----------------------------------------------------------------------
# Stock levels
# ----------------------------------------------------------------------


class BalanceRead(BaseModel):
    id: int
    part_id: int
    part_number: Optional[str] = None
    part_description: Optional[str] = None
    classification: Optional[str] = None
    location_id: int
    location_name: Optional[str] = None
    location_type: Optional[str] = None
    quantity_on_hand: int

    class Config:
        from_attributes = True


class ConsistencyRead(BaseModel):
    part_id: int
    location_id: int
    quantity_on_hand: int
    layer_remaining_total: int
    consistent: bool
