from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from stashdb import errors
from stashdb.apps.catalog import services as catalog_services
from stashdb.apps.inventory import fifo
from stashdb.apps.inventory import services as inventory_services
from stashdb.apps.workflow import TransitionError, allowed_targets, apply_transition

from . import models, schemas

logger = logging.getLogger(__name__)

WORKFLOW_NAME = "purchase_order"
PO_NUMBER_PATTERN = re.compile(r"PO-\d{4}-(\d+)")


def _next_po_number(db: Session) -> str:
    last = db.query(models.PurchaseOrder).order_by(models.PurchaseOrder.id.desc()).first()
    next_num = 1
    if last:
        match = PO_NUMBER_PATTERN.match(last.po_number or "")
        if match:
            next_num = int(match.group(1)) + 1
    year = datetime.now(timezone.utc).year
    return f"PO-{year}-{next_num:03d}"


def _transition(db: Session, po: models.PurchaseOrder, to_state: models.PurchaseOrderStatusEnum) -> None:
    try:
        apply_transition(
            db,
            entity_type=WORKFLOW_NAME,
            entity_id=str(po.id),
            from_state=po.status.value,
            to_state=to_state.value,
            before_obj=po,
            after_obj=po,
        )
    except TransitionError as exc:
        message = str(exc)
        if exc.code == "invalid_transition":
            targets = allowed_targets(WORKFLOW_NAME, po.status.value)
            message = f"{message}. Allowed: {', '.join(targets) or 'none'}"
        raise errors.StateError(message) from exc
    po.status = to_state


def get_purchase_order(db: Session, purchase_order_id: int, *, lock: bool = False) -> models.PurchaseOrder:
    query = db.query(models.PurchaseOrder).filter(models.PurchaseOrder.id == purchase_order_id)
    if lock:
        query = query.with_for_update(of=models.PurchaseOrder)
    po = query.first()
    if not po:
        raise errors.NotFoundError("Purchase order not found")
    return po


def list_purchase_orders(
    db: Session,
    *,
    status: Optional[models.PurchaseOrderStatusEnum] = None,
) -> List[models.PurchaseOrder]:
    query = db.query(models.PurchaseOrder)
    if status is not None:
        query = query.filter(models.PurchaseOrder.status == status)
    return query.order_by(models.PurchaseOrder.created_at.desc(), models.PurchaseOrder.id.desc()).all()


def create_purchase_order(db: Session, *, payload: schemas.PurchaseOrderCreate) -> models.PurchaseOrder:
    supplier = catalog_services.get_supplier(db, payload.supplier_id)
    if not payload.line_items:
        raise errors.ValidationError("line_items must not be empty")
    for line in payload.line_items:
        catalog_services.get_part(db, line.part_id)

    po = models.PurchaseOrder(
        po_number=_next_po_number(db),
        supplier_id=supplier.id,
        status=models.PurchaseOrderStatusEnum.DRAFT,
        expected_delivery_date=payload.expected_delivery_date,
        line_items=[
            models.PurchaseOrderLine(
                part_id=line.part_id,
                quantity_ordered=line.quantity_ordered,
                quantity_received=0,
                unit_cost=fifo.to_cost(line.unit_cost),
            )
            for line in payload.line_items
        ],
    )
    db.add(po)
    db.flush()
    logger.info(
        "Created purchase order",
        extra={"purchase_order_id": po.id, "po_number": po.po_number, "lines": len(payload.line_items)},
    )
    return po


def set_purchase_order_status(
    db: Session,
    *,
    purchase_order_id: int,
    status: models.PurchaseOrderStatusEnum,
) -> models.PurchaseOrder:
    po = get_purchase_order(db, purchase_order_id, lock=True)
    if po.status == status:
        return po
    _transition(db, po, status)
    db.flush()
    return po


def _status_after_receipt(po: models.PurchaseOrder) -> models.PurchaseOrderStatusEnum:
    if po.is_fully_received:
        return models.PurchaseOrderStatusEnum.CLOSED
    if po.any_received:
        return models.PurchaseOrderStatusEnum.PARTIALLY_RECEIVED
    return po.status


def receive_purchase_order(
    db: Session,
    *,
    purchase_order_id: int,
    payload: schemas.PurchaseOrderReceiveRequest,
) -> schemas.PurchaseOrderReceiveResult:
    """
    Receive a batch of line items into one location.

    The whole batch is one unit of work: the first invalid item aborts it
    and undoes every layer, balance and audit row written before it.
    """
    po = get_purchase_order(db, purchase_order_id)
    keys = [(line.part_id, payload.location_id) for line in po.line_items]
    context = {"purchase_order_id": purchase_order_id, "location_id": payload.location_id}

    with inventory_services.ledger_operation(db, "purchase order receipt", keys, **context):
        po = get_purchase_order(db, purchase_order_id, lock=True)
        if po.status == models.PurchaseOrderStatusEnum.CLOSED:
            raise errors.StateError("Cannot receive against a closed PO")
        if po.status == models.PurchaseOrderStatusEnum.DRAFT:
            raise errors.StateError("PO must be in Ordered status to receive")
        location = catalog_services.get_location(db, payload.location_id)
        if not payload.items:
            raise errors.ValidationError("items must not be empty")

        lines = {line.id: line for line in po.line_items}
        received = []
        for item in payload.items:
            quantity = item.quantity_received
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise errors.ValidationError("Each item requires line_item_id and positive quantity_received")
            line = lines.get(item.line_item_id)
            if line is None:
                raise errors.NotFoundError(f"Line item {item.line_item_id} not found on this PO")
            if quantity > line.remaining:
                raise errors.ValidationError(
                    f"Cannot receive {quantity} of {line.part_number}. Only {line.remaining} remaining."
                )
            received.append(
                inventory_services.post_receipt(
                    db,
                    part=line.part,
                    location=location,
                    quantity=quantity,
                    unit_cost=fifo.to_cost(line.unit_cost),
                    po_ref=po.po_number,
                    purchase_order_id=po.id,
                    reason=f"Received against {po.po_number}",
                )
            )
            line.quantity_received = line.quantity_received + quantity
        db.flush()

        new_status = _status_after_receipt(po)
        if new_status != po.status:
            _transition(db, po, new_status)
            db.flush()
        result = schemas.PurchaseOrderReceiveResult(
            purchase_order_id=po.id,
            po_number=po.po_number,
            po_status=po.status,
            received=received,
        )
    logger.info(
        "Received against purchase order",
        extra={**context, "items": len(received), "po_status": result.po_status.value},
    )
    return result
