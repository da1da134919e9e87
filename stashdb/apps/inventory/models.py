from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stashdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LayerSourceTypeEnum(str, enum.Enum):
    PO_RECEIPT = "PO_RECEIPT"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"


class FifoLayer(Base):
    """
    One batch of stock with a single origin and unit cost.

    Only `remaining_qty` changes after insert; layers are drained oldest
    first by (created_at, id) and are never merged or deleted.
    """

    __tablename__ = "fifo_layers"
    __table_args__ = (
        CheckConstraint("original_qty > 0", name="ck_fifo_layers_original_qty_positive"),
        CheckConstraint("remaining_qty >= 0", name="ck_fifo_layers_remaining_qty_non_negative"),
        CheckConstraint("remaining_qty <= original_qty", name="ck_fifo_layers_remaining_le_original"),
        CheckConstraint("unit_cost >= 0", name="ck_fifo_layers_unit_cost_non_negative"),
        Index("ix_fifo_layers_part_location", "part_id", "location_id", "remaining_qty"),
        Index("ix_fifo_layers_fifo_order", "part_id", "location_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    source_type = Column(
        SAEnum(LayerSourceTypeEnum, name="fifo_layer_source_type_enum", native_enum=False),
        nullable=False,
    )
    source_ref = Column(String(128), nullable=True)
    original_qty = Column(Integer, nullable=False)
    remaining_qty = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 4), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    part = relationship("Part", lazy="joined")
    location = relationship("Location", lazy="joined")

    @property
    def part_number(self):
        return self.part.part_number if self.part else None

    @property
    def location_name(self):
        return self.location.name if self.location else None

    def __repr__(self) -> str:
        return (
            f"<FifoLayer id={self.id} part={self.part_id} location={self.location_id} "
            f"remaining={self.remaining_qty}/{self.original_qty} cost={self.unit_cost}>"
        )


class InventoryBalance(Base):
    """
    Current on-hand quantity per (part, location).

    Kept equal to the sum of that pair's layer remaining quantities by the
    transaction engine; never physically removed while positive.
    """

    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("part_id", "location_id", name="uq_inventory_part_location"),
        CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    quantity_on_hand = Column(Integer, nullable=False, default=0)

    part = relationship("Part", lazy="joined")
    location = relationship("Location", lazy="joined")

    @property
    def part_number(self):
        return self.part.part_number if self.part else None

    @property
    def part_description(self):
        return self.part.description if self.part else None

    @property
    def classification(self):
        return self.part.classification if self.part else None

    @property
    def location_name(self):
        return self.location.name if self.location else None

    @property
    def location_type(self):
        return self.location.type.value if self.location else None
