from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


def record_transaction(db: Session, *, data: schemas.TransactionCreate) -> models.InventoryTransaction:
    """
    Append one transaction record together with its layer breakdown.

    Parent and children are inserted in the same flush; records are never
    touched again afterwards.
    """
    txn = models.InventoryTransaction(
        transaction_type=data.transaction_type,
        part_id=data.part_id,
        location_id=data.location_id,
        to_location_id=data.to_location_id,
        quantity=data.quantity,
        unit_cost=data.unit_cost,
        total_cost=data.total_cost,
        reference_type=data.reference_type,
        reference_id=data.reference_id,
        target_ref=data.target_ref,
        reason=data.reason,
        layers=[models.InventoryTransactionLayer(**layer.model_dump()) for layer in data.layers],
    )
    db.add(txn)
    db.flush()
    logger.debug(
        "Recorded inventory transaction",
        extra={
            "transaction_id": txn.id,
            "transaction_type": data.transaction_type.value,
            "part_id": data.part_id,
            "location_id": data.location_id,
            "quantity": data.quantity,
        },
    )
    return txn


def list_transactions(
    db: Session,
    *,
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    transaction_type: Optional[models.TransactionTypeEnum] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[models.InventoryTransaction]:
    query = db.query(models.InventoryTransaction)
    if part_id is not None:
        query = query.filter(models.InventoryTransaction.part_id == part_id)
    if location_id is not None:
        query = query.filter(models.InventoryTransaction.location_id == location_id)
    if transaction_type is not None:
        query = query.filter(models.InventoryTransaction.transaction_type == transaction_type)
    return (
        query.order_by(models.InventoryTransaction.created_at.desc(), models.InventoryTransaction.id.desc())
        .limit(limit if limit and limit > 0 else DEFAULT_HISTORY_LIMIT)
        .all()
    )
