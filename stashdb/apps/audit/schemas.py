from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class TransactionLayerCreate(BaseModel):
    layer_id: int
    created_layer_id: Optional[int] = None
    quantity: int
    unit_cost: Decimal
    cost: Decimal


class TransactionCreate(BaseModel):
    transaction_type: models.TransactionTypeEnum
    part_id: int
    location_id: int
    to_location_id: Optional[int] = None
    quantity: int
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    reference_type: Optional[models.ReferenceTypeEnum] = models.ReferenceTypeEnum.MANUAL
    reference_id: Optional[int] = None
    target_ref: Optional[str] = None
    reason: Optional[str] = None
    layers: List[TransactionLayerCreate] = Field(default_factory=list)


class TransactionLayerRead(TransactionLayerCreate):
    id: int

    class Config:
        from_attributes = True


class TransactionRead(BaseModel):
    id: int
    transaction_type: models.TransactionTypeEnum
    part_id: int
    part_number: Optional[str] = None
    location_id: int
    location_name: Optional[str] = None
    to_location_id: Optional[int] = None
    to_location_name: Optional[str] = None
    quantity: int
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    reference_type: Optional[models.ReferenceTypeEnum] = None
    reference_id: Optional[int] = None
    target_ref: Optional[str] = None
    reason: Optional[str] = None
    layers: List[TransactionLayerRead] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True
