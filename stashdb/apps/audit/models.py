from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    desc,
    event,
)
from sqlalchemy.orm import relationship

from stashdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionTypeEnum(str, enum.Enum):
    RECEIVE = "RECEIVE"
    ISSUE = "ISSUE"
    MOVE = "MOVE"
    DISPOSE = "DISPOSE"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"


class ReferenceTypeEnum(str, enum.Enum):
    PO = "PO"
    MANUAL = "MANUAL"


class ImmutableRecordError(Exception):
    pass


class InventoryTransaction(Base):
    """
    Append-only audit trail entry for one ledger operation.

    Quantity is signed: positive for inflow (and for MOVE), negative for
    outflow. Which layers were consumed or created lives in `layers`.
    """

    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inventory_transactions_part", "part_id"),
        Index("ix_inventory_transactions_location", "location_id"),
        Index("ix_inventory_transactions_created_desc", desc("created_at")),
    )

    id = Column(Integer, primary_key=True, index=True)
    transaction_type = Column(
        SAEnum(TransactionTypeEnum, name="inventory_transaction_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    to_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 4), nullable=True)
    total_cost = Column(Numeric(12, 4), nullable=True)
    reference_type = Column(
        SAEnum(ReferenceTypeEnum, name="inventory_reference_type_enum", native_enum=False),
        nullable=True,
    )
    reference_id = Column(Integer, nullable=True)
    target_ref = Column(String(128), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    part = relationship("Part", lazy="joined")
    location = relationship("Location", foreign_keys=[location_id], lazy="joined")
    to_location = relationship("Location", foreign_keys=[to_location_id], lazy="joined")
    layers = relationship(
        "InventoryTransactionLayer",
        back_populates="transaction",
        lazy="selectin",
        order_by="InventoryTransactionLayer.id",
    )

    @property
    def part_number(self):
        return self.part.part_number if self.part else None

    @property
    def location_name(self):
        return self.location.name if self.location else None

    @property
    def to_location_name(self):
        return self.to_location.name if self.to_location else None

    def __repr__(self) -> str:
        return f"<InventoryTransaction id={self.id} type={self.transaction_type} qty={self.quantity}>"


class InventoryTransactionLayer(Base):
    """Per-layer breakdown of one transaction's cost."""

    __tablename__ = "inventory_transaction_layers"
    __table_args__ = (
        Index("ix_inventory_transaction_layers_txn", "transaction_id"),
        Index("ix_inventory_transaction_layers_layer", "layer_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("inventory_transactions.id"), nullable=False)
    # layer consumed (outflows, MOVE source) or created (inflows)
    layer_id = Column(Integer, ForeignKey("fifo_layers.id"), nullable=False)
    # MOVE only: the destination layer built from `layer_id`
    created_layer_id = Column(Integer, ForeignKey("fifo_layers.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 4), nullable=False)
    cost = Column(Numeric(12, 4), nullable=False)

    transaction = relationship("InventoryTransaction", back_populates="layers")


def _reject_mutation(mapper, connection, target) -> None:
    raise ImmutableRecordError(f"{type(target).__name__} rows are append-only")


for _model in (InventoryTransaction, InventoryTransactionLayer):
    event.listen(_model, "before_update", _reject_mutation)
    event.listen(_model, "before_delete", _reject_mutation)
