"""
FIFO cost-layer primitives.

Layers for a (part, location) pair are consumed oldest first, ordered by
(created_at, id). These helpers only flush; the transaction engine owns the
unit of work, the stock precheck and the aggregate update.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas

COST_QUANT = Decimal("0.0001")


def to_cost(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(COST_QUANT, rounding=ROUND_HALF_UP)


def weighted_average(total_cost: Decimal, quantity: int) -> Decimal:
    if not quantity:
        return to_cost(0)
    return to_cost(total_cost / quantity)


def _fifo_order():
    return (models.FifoLayer.created_at.asc(), models.FifoLayer.id.asc())


def available_layers(db: Session, *, part_id: int, location_id: int, lock: bool = False) -> List[models.FifoLayer]:
    query = db.query(models.FifoLayer).filter(
        models.FifoLayer.part_id == part_id,
        models.FifoLayer.location_id == location_id,
        models.FifoLayer.remaining_qty > 0,
    )
    if lock:
        query = query.with_for_update(of=models.FifoLayer)
    return query.order_by(*_fifo_order()).all()


def consume(db: Session, *, part_id: int, location_id: int, quantity: int) -> List[schemas.LayerConsumption]:
    """
    Drain `quantity` units from the pair's layers, oldest first.

    Assumes the caller has already checked the aggregate holds enough stock.
    """
    still_needed = quantity
    consumed: List[schemas.LayerConsumption] = []
    for layer in available_layers(db, part_id=part_id, location_id=location_id, lock=True):
        if still_needed <= 0:
            break
        taken = min(layer.remaining_qty, still_needed)
        layer.remaining_qty = layer.remaining_qty - taken
        unit_cost = to_cost(layer.unit_cost)
        consumed.append(
            schemas.LayerConsumption(
                layer_id=layer.id,
                quantity_consumed=taken,
                unit_cost=unit_cost,
                cost=to_cost(unit_cost * taken),
                source_type=layer.source_type,
                source_ref=layer.source_ref,
                created_at=layer.created_at,
            )
        )
        still_needed -= taken
    db.flush()
    return consumed


def create(
    db: Session,
    *,
    part_id: int,
    location_id: int,
    source_type: models.LayerSourceTypeEnum,
    source_ref: Optional[str],
    quantity: int,
    unit_cost: Decimal,
    created_at: Optional[datetime] = None,
) -> models.FifoLayer:
    layer = models.FifoLayer(
        part_id=part_id,
        location_id=location_id,
        source_type=source_type,
        source_ref=source_ref,
        original_qty=quantity,
        remaining_qty=quantity,
        unit_cost=to_cost(unit_cost),
    )
    if created_at is not None:
        # moved stock keeps the age of the layer it came from
        layer.created_at = created_at
    db.add(layer)
    db.flush()
    return layer


def latest_unit_cost(db: Session, *, part_id: int, location_id: int) -> Optional[Decimal]:
    """Unit cost of the newest layer for the pair, depleted layers included."""
    layer = (
        db.query(models.FifoLayer)
        .filter(
            models.FifoLayer.part_id == part_id,
            models.FifoLayer.location_id == location_id,
        )
        .order_by(models.FifoLayer.created_at.desc(), models.FifoLayer.id.desc())
        .first()
    )
    if layer is None:
        return None
    return to_cost(layer.unit_cost)


def list_layers(
    db: Session,
    *,
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    include_depleted: bool = False,
) -> List[models.FifoLayer]:
    query = db.query(models.FifoLayer)
    if not include_depleted:
        query = query.filter(models.FifoLayer.remaining_qty > 0)
    if part_id is not None:
        query = query.filter(models.FifoLayer.part_id == part_id)
    if location_id is not None:
        query = query.filter(models.FifoLayer.location_id == location_id)
    return query.order_by(
        models.FifoLayer.part_id,
        models.FifoLayer.location_id,
        *_fifo_order(),
    ).all()


def remaining_total(db: Session, *, part_id: int, location_id: int) -> int:
    return sum(
        layer.remaining_qty
        for layer in db.query(models.FifoLayer).filter(
            models.FifoLayer.part_id == part_id,
            models.FifoLayer.location_id == location_id,
        )
    )
