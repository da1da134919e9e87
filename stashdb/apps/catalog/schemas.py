from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from . import models


class PartBase(BaseModel):
    description: str = ""
    unit_of_measure: str = "EA"
    classification: str = "General"
    cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=4)
    manufacturer: Optional[str] = None
    mfg_part_number: Optional[str] = None
    notes: Optional[str] = None


class PartCreate(PartBase):
    part_number: str = Field(..., min_length=1, max_length=64)


class PartUpdate(BaseModel):
    part_number: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = None
    unit_of_measure: Optional[str] = None
    classification: Optional[str] = None
    cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=4)
    manufacturer: Optional[str] = None
    mfg_part_number: Optional[str] = None
    notes: Optional[str] = None


class PartRead(PartCreate):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    type: models.LocationTypeEnum


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    type: Optional[models.LocationTypeEnum] = None


class LocationRead(LocationCreate):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)


class SupplierRead(SupplierCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True
