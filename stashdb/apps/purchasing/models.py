from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
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


class PurchaseOrderStatusEnum(str, enum.Enum):
    DRAFT = "Draft"
    ORDERED = "Ordered"
    PARTIALLY_RECEIVED = "Partially Received"
    CLOSED = "Closed"


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_orders_po_number"),
        Index("ix_purchase_orders_supplier", "supplier_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(32), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    status = Column(
        SAEnum(
            PurchaseOrderStatusEnum,
            name="purchase_order_status_enum",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=PurchaseOrderStatusEnum.DRAFT,
        index=True,
    )
    expected_delivery_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    supplier = relationship("Supplier", lazy="joined")
    line_items = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        lazy="selectin",
        order_by="PurchaseOrderLine.id",
    )

    @property
    def supplier_name(self):
        return self.supplier.name if self.supplier else None

    @property
    def is_fully_received(self) -> bool:
        return bool(self.line_items) and all(line.remaining == 0 for line in self.line_items)

    @property
    def any_received(self) -> bool:
        return any(line.quantity_received > 0 for line in self.line_items)

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} po_number={self.po_number} status={self.status}>"


class PurchaseOrderLine(Base):
    __tablename__ = "po_line_items"
    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_line_items_ordered_positive"),
        CheckConstraint("quantity_received >= 0", name="ck_po_line_items_received_non_negative"),
        CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_line_items_received_le_ordered"),
        CheckConstraint("unit_cost >= 0", name="ck_po_line_items_unit_cost_non_negative"),
        Index("ix_po_line_items_po", "purchase_order_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=False, index=True)
    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Numeric(12, 4), nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="line_items")
    part = relationship("Part", lazy="joined")

    @property
    def remaining(self) -> int:
        return self.quantity_ordered - (self.quantity_received or 0)

    @property
    def part_number(self):
        return self.part.part_number if self.part else None

    @property
    def part_description(self):
        return self.part.description if self.part else None
