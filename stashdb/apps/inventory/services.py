"""
Inventory transaction engine.

Every public operation here is one unit of work: it resolves the part and
location, validates its input, takes the stock locks of each (part, location)
pair it touches, prechecks the aggregate, drives the FIFO layers, keeps the
aggregate in step and appends exactly one audit record. Any error rolls back
every write made by the call.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from stashdb import errors
from stashdb.apps.audit import models as audit_models
from stashdb.apps.audit import schemas as audit_schemas
from stashdb.apps.audit import services as audit_services
from stashdb.apps.catalog import models as catalog_models
from stashdb.apps.catalog import services as catalog_services
from stashdb.database import unit_of_work

from . import fifo, models, schemas
from .locks import StockKey, stock_locks

logger = logging.getLogger(__name__)

NO_ADJUSTMENT_MESSAGE = "No adjustment needed"


@contextmanager
def ledger_operation(db: Session, operation: str, keys: Iterable[StockKey], **context) -> Iterator[Session]:
    """
    Hold the stock locks for `keys` around one unit of work.

    Rejections are logged at warning level and re-raised untouched.
    """
    try:
        with stock_locks(*keys), unit_of_work(db):
            yield db
    except errors.StashError as exc:
        logger.warning(
            "Inventory %s rejected: %s",
            operation,
            exc.detail,
            extra={"operation": operation, "status_code": exc.status_code, **context},
        )
        raise


# ----------------------------------------------------------------------
# Validation helpers
# ----------------------------------------------------------------------


def _require_positive(quantity, *, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise errors.ValidationError(f"{field} must be a positive whole number")
    return quantity


def _require_cost(unit_cost, *, field: str = "unit_cost") -> Decimal:
    if unit_cost is None:
        raise errors.ValidationError(f"{field} is required")
    cost = fifo.to_cost(unit_cost)
    if cost < 0:
        raise errors.ValidationError(f"{field} must not be negative")
    return cost


def _require_reason(reason: Optional[str], *, operation: str) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise errors.ValidationError(f"reason is required for {operation}")
    return cleaned


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _resolve(db: Session, *, part_id: int, location_id: int) -> Tuple[catalog_models.Part, catalog_models.Location]:
    part = catalog_services.get_part(db, part_id)
    location = catalog_services.get_location(db, location_id)
    return part, location


# ----------------------------------------------------------------------
# Aggregate helpers
# ----------------------------------------------------------------------


def _locked_balance(db: Session, *, part_id: int, location_id: int) -> Optional[models.InventoryBalance]:
    return (
        db.query(models.InventoryBalance)
        .filter(
            models.InventoryBalance.part_id == part_id,
            models.InventoryBalance.location_id == location_id,
        )
        .with_for_update(of=models.InventoryBalance)
        .first()
    )


def _on_hand(db: Session, *, part_id: int, location_id: int) -> int:
    balance = _locked_balance(db, part_id=part_id, location_id=location_id)
    return balance.quantity_on_hand if balance else 0


def _require_stock(db: Session, *, part_id: int, location_id: int, quantity: int) -> int:
    available = _on_hand(db, part_id=part_id, location_id=location_id)
    if available < quantity:
        raise errors.InsufficientStockError(
            f"Insufficient inventory. Available: {available}, Requested: {quantity}"
        )
    return available


def _apply_delta(db: Session, *, part_id: int, location_id: int, delta: int) -> models.InventoryBalance:
    balance = _locked_balance(db, part_id=part_id, location_id=location_id)
    if balance is None:
        balance = models.InventoryBalance(part_id=part_id, location_id=location_id, quantity_on_hand=0)
        db.add(balance)
    balance.quantity_on_hand = balance.quantity_on_hand + delta
    db.flush()
    return balance


def _total_cost(consumed: List[schemas.LayerConsumption]) -> Decimal:
    return fifo.to_cost(sum((entry.cost for entry in consumed), Decimal("0")))


def _consumed_rows(consumed: List[schemas.LayerConsumption]) -> List[audit_schemas.TransactionLayerCreate]:
    return [
        audit_schemas.TransactionLayerCreate(
            layer_id=entry.layer_id,
            quantity=entry.quantity_consumed,
            unit_cost=entry.unit_cost,
            cost=entry.cost,
        )
        for entry in consumed
    ]


def _created_row(layer: models.FifoLayer) -> audit_schemas.TransactionLayerCreate:
    unit_cost = fifo.to_cost(layer.unit_cost)
    return audit_schemas.TransactionLayerCreate(
        layer_id=layer.id,
        quantity=layer.original_qty,
        unit_cost=unit_cost,
        cost=fifo.to_cost(unit_cost * layer.original_qty),
    )


# ----------------------------------------------------------------------
# Receive
# ----------------------------------------------------------------------


def post_receipt(
    db: Session,
    *,
    part: catalog_models.Part,
    location: catalog_models.Location,
    quantity: int,
    unit_cost: Decimal,
    po_ref: Optional[str],
    purchase_order_id: Optional[int],
    reason: Optional[str] = None,
) -> schemas.ReceiveResult:
    """Receive without opening a unit of work; the caller commits."""
    layer = fifo.create(
        db,
        part_id=part.id,
        location_id=location.id,
        source_type=models.LayerSourceTypeEnum.PO_RECEIPT,
        source_ref=po_ref,
        quantity=quantity,
        unit_cost=unit_cost,
    )
    _apply_delta(db, part_id=part.id, location_id=location.id, delta=quantity)
    total = fifo.to_cost(unit_cost * quantity)
    txn = audit_services.record_transaction(
        db,
        data=audit_schemas.TransactionCreate(
            transaction_type=audit_models.TransactionTypeEnum.RECEIVE,
            part_id=part.id,
            location_id=location.id,
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=total,
            reference_type=(
                audit_models.ReferenceTypeEnum.PO
                if purchase_order_id is not None
                else audit_models.ReferenceTypeEnum.MANUAL
            ),
            reference_id=purchase_order_id,
            reason=reason,
            layers=[_created_row(layer)],
        ),
    )
    return schemas.ReceiveResult(
        transaction_id=txn.id,
        part_id=part.id,
        part_number=part.part_number,
        location_id=location.id,
        location_name=location.name,
        quantity_received=quantity,
        unit_cost=unit_cost,
        total_cost=total,
        fifo_layer_created=schemas.FifoLayerRead.model_validate(layer),
    )


def receive_inventory(db: Session, *, payload: schemas.InventoryReceiveRequest) -> schemas.ReceiveResult:
    keys = [(payload.part_id, payload.location_id)]
    context = {"part_id": payload.part_id, "location_id": payload.location_id}
    with ledger_operation(db, "receive", keys, **context):
        part, location = _resolve(db, part_id=payload.part_id, location_id=payload.location_id)
        quantity = _require_positive(payload.quantity)
        unit_cost = _require_cost(payload.unit_cost)
        result = post_receipt(
            db,
            part=part,
            location=location,
            quantity=quantity,
            unit_cost=unit_cost,
            po_ref=_clean(payload.po_ref),
            purchase_order_id=payload.purchase_order_id,
        )
    logger.info(
        "Received inventory",
        extra={**context, "quantity": quantity, "transaction_id": result.transaction_id},
    )
    return result


# ----------------------------------------------------------------------
# Issue / Dispose
# ----------------------------------------------------------------------


def _consume_out(
    db: Session,
    *,
    transaction_type: audit_models.TransactionTypeEnum,
    part: catalog_models.Part,
    location: catalog_models.Location,
    quantity: int,
    reason: Optional[str],
    target_ref: Optional[str],
) -> schemas.ConsumptionResult:
    _require_stock(db, part_id=part.id, location_id=location.id, quantity=quantity)
    consumed = fifo.consume(db, part_id=part.id, location_id=location.id, quantity=quantity)
    _apply_delta(db, part_id=part.id, location_id=location.id, delta=-quantity)
    total = _total_cost(consumed)
    average = fifo.weighted_average(total, quantity)
    txn = audit_services.record_transaction(
        db,
        data=audit_schemas.TransactionCreate(
            transaction_type=transaction_type,
            part_id=part.id,
            location_id=location.id,
            quantity=-quantity,
            unit_cost=average,
            total_cost=-total,
            target_ref=target_ref,
            reason=reason,
            layers=_consumed_rows(consumed),
        ),
    )
    return schemas.ConsumptionResult(
        transaction_id=txn.id,
        transaction_type=transaction_type.value,
        part_id=part.id,
        part_number=part.part_number,
        location_id=location.id,
        location_name=location.name,
        quantity=quantity,
        total_cost=total,
        average_unit_cost=average,
        reason=reason,
        target_ref=target_ref,
        fifo_layers_consumed=consumed,
    )


def issue_inventory(db: Session, *, payload: schemas.InventoryIssueRequest) -> schemas.ConsumptionResult:
    keys = [(payload.part_id, payload.location_id)]
    context = {"part_id": payload.part_id, "location_id": payload.location_id}
    with ledger_operation(db, "issue", keys, **context):
        part, location = _resolve(db, part_id=payload.part_id, location_id=payload.location_id)
        quantity = _require_positive(payload.quantity)
        result = _consume_out(
            db,
            transaction_type=audit_models.TransactionTypeEnum.ISSUE,
            part=part,
            location=location,
            quantity=quantity,
            reason=_clean(payload.reason),
            target_ref=_clean(payload.target_ref),
        )
    logger.info(
        "Issued inventory",
        extra={**context, "quantity": quantity, "total_cost": str(result.total_cost)},
    )
    return result


def dispose_inventory(db: Session, *, payload: schemas.InventoryDisposeRequest) -> schemas.ConsumptionResult:
    keys = [(payload.part_id, payload.location_id)]
    context = {"part_id": payload.part_id, "location_id": payload.location_id}
    with ledger_operation(db, "dispose", keys, **context):
        part, location = _resolve(db, part_id=payload.part_id, location_id=payload.location_id)
        quantity = _require_positive(payload.quantity)
        reason = _require_reason(payload.reason, operation="disposal")
        result = _consume_out(
            db,
            transaction_type=audit_models.TransactionTypeEnum.DISPOSE,
            part=part,
            location=location,
            quantity=quantity,
            reason=reason,
            target_ref=None,
        )
    logger.info(
        "Disposed inventory",
        extra={**context, "quantity": quantity, "total_cost": str(result.total_cost)},
    )
    return result


# ----------------------------------------------------------------------
# Move
# ----------------------------------------------------------------------


def move_inventory(db: Session, *, payload: schemas.InventoryMoveRequest) -> schemas.MoveResult:
    """
    Relocate stock, carrying each consumed layer's cost, origin and age to
    a fresh layer at the destination.
    """
    keys = [(payload.part_id, payload.from_location_id), (payload.part_id, payload.to_location_id)]
    context = {
        "part_id": payload.part_id,
        "from_location_id": payload.from_location_id,
        "to_location_id": payload.to_location_id,
    }
    with ledger_operation(db, "move", keys, **context):
        if payload.from_location_id == payload.to_location_id:
            raise errors.ValidationError("Source and destination locations must be different")
        part = catalog_services.get_part(db, payload.part_id)
        source = catalog_services.get_location(db, payload.from_location_id, label="Source location")
        destination = catalog_services.get_location(db, payload.to_location_id, label="Destination location")
        quantity = _require_positive(payload.quantity)

        _require_stock(db, part_id=part.id, location_id=source.id, quantity=quantity)
        consumed = fifo.consume(db, part_id=part.id, location_id=source.id, quantity=quantity)
        moved: List[schemas.LayerMove] = []
        for entry in consumed:
            layer = fifo.create(
                db,
                part_id=part.id,
                location_id=destination.id,
                source_type=entry.source_type,
                source_ref=entry.source_ref,
                quantity=entry.quantity_consumed,
                unit_cost=entry.unit_cost,
                created_at=entry.created_at,
            )
            moved.append(
                schemas.LayerMove(
                    source_layer_id=entry.layer_id,
                    created_layer_id=layer.id,
                    quantity_moved=entry.quantity_consumed,
                    unit_cost=entry.unit_cost,
                    cost=entry.cost,
                )
            )
        _apply_delta(db, part_id=part.id, location_id=source.id, delta=-quantity)
        _apply_delta(db, part_id=part.id, location_id=destination.id, delta=quantity)

        total = _total_cost(consumed)
        average = fifo.weighted_average(total, quantity)
        txn = audit_services.record_transaction(
            db,
            data=audit_schemas.TransactionCreate(
                transaction_type=audit_models.TransactionTypeEnum.MOVE,
                part_id=part.id,
                location_id=source.id,
                to_location_id=destination.id,
                quantity=quantity,
                unit_cost=average,
                total_cost=total,
                layers=[
                    audit_schemas.TransactionLayerCreate(
                        layer_id=entry.source_layer_id,
                        created_layer_id=entry.created_layer_id,
                        quantity=entry.quantity_moved,
                        unit_cost=entry.unit_cost,
                        cost=entry.cost,
                    )
                    for entry in moved
                ],
            ),
        )
        result = schemas.MoveResult(
            transaction_id=txn.id,
            part_id=part.id,
            part_number=part.part_number,
            from_location_id=source.id,
            from_location=source.name,
            to_location_id=destination.id,
            to_location=destination.name,
            quantity_moved=quantity,
            total_cost=total,
            average_unit_cost=average,
            fifo_layers_moved=moved,
        )
    logger.info("Moved inventory", extra={**context, "quantity": quantity, "total_cost": str(total)})
    return result


# ----------------------------------------------------------------------
# Return
# ----------------------------------------------------------------------


def return_inventory(db: Session, *, payload: schemas.InventoryReturnRequest) -> schemas.ReturnResult:
    keys = [(payload.part_id, payload.location_id)]
    context = {"part_id": payload.part_id, "location_id": payload.location_id}
    with ledger_operation(db, "return", keys, **context):
        part, location = _resolve(db, part_id=payload.part_id, location_id=payload.location_id)
        quantity = _require_positive(payload.quantity)
        unit_cost = _require_cost(payload.unit_cost)
        reason = _clean(payload.reason)
        reference = _clean(payload.reference)

        layer = fifo.create(
            db,
            part_id=part.id,
            location_id=location.id,
            source_type=models.LayerSourceTypeEnum.RETURN,
            source_ref=reference,
            quantity=quantity,
            unit_cost=unit_cost,
        )
        _apply_delta(db, part_id=part.id, location_id=location.id, delta=quantity)
        total = fifo.to_cost(unit_cost * quantity)
        txn = audit_services.record_transaction(
            db,
            data=audit_schemas.TransactionCreate(
                transaction_type=audit_models.TransactionTypeEnum.RETURN,
                part_id=part.id,
                location_id=location.id,
                quantity=quantity,
                unit_cost=unit_cost,
                total_cost=total,
                target_ref=reference,
                reason=reason,
                layers=[_created_row(layer)],
            ),
        )
        result = schemas.ReturnResult(
            transaction_id=txn.id,
            part_id=part.id,
            part_number=part.part_number,
            location_id=location.id,
            location_name=location.name,
            quantity_returned=quantity,
            unit_cost=unit_cost,
            total_cost=total,
            reason=reason,
            reference=reference,
            fifo_layer_created=schemas.FifoLayerRead.model_validate(layer),
        )
    logger.info("Returned inventory", extra={**context, "quantity": quantity, "total_cost": str(total)})
    return result


# ----------------------------------------------------------------------
# Adjust
# ----------------------------------------------------------------------


def adjust_inventory(db: Session, *, payload: schemas.InventoryAdjustRequest) -> schemas.AdjustResult:
    """
    Set the on-hand quantity of a pair to `new_quantity` after a count.

    A shortage drains layers FIFO. An overage becomes a new ADJUSTMENT layer
    costed at the supplied unit cost, or at the newest existing layer's cost.
    """
    keys = [(payload.part_id, payload.location_id)]
    context = {"part_id": payload.part_id, "location_id": payload.location_id}
    with ledger_operation(db, "adjust", keys, **context):
        part, location = _resolve(db, part_id=payload.part_id, location_id=payload.location_id)
        new_quantity = payload.new_quantity
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity < 0:
            raise errors.ValidationError("new_quantity must be a non-negative whole number")
        reason = _require_reason(payload.reason, operation="adjustment")
        supplied_cost = None if payload.unit_cost is None else _require_cost(payload.unit_cost)

        before = _on_hand(db, part_id=part.id, location_id=location.id)
        delta = new_quantity - before
        base = dict(
            part_id=part.id,
            part_number=part.part_number,
            location_id=location.id,
            location_name=location.name,
            before_quantity=before,
            after_quantity=new_quantity,
            delta=delta,
            reason=reason,
        )
        if delta == 0:
            return schemas.AdjustResult(message=NO_ADJUSTMENT_MESSAGE, **base)

        if delta < 0:
            consumed = fifo.consume(db, part_id=part.id, location_id=location.id, quantity=-delta)
            _apply_delta(db, part_id=part.id, location_id=location.id, delta=delta)
            total = _total_cost(consumed)
            average = fifo.weighted_average(total, -delta)
            txn = audit_services.record_transaction(
                db,
                data=audit_schemas.TransactionCreate(
                    transaction_type=audit_models.TransactionTypeEnum.ADJUSTMENT,
                    part_id=part.id,
                    location_id=location.id,
                    quantity=delta,
                    unit_cost=average,
                    total_cost=-total,
                    reason=reason,
                    layers=_consumed_rows(consumed),
                ),
            )
            result = schemas.AdjustResult(
                transaction_id=txn.id,
                unit_cost=average,
                total_cost=total,
                average_unit_cost=average,
                fifo_layers_consumed=consumed,
                **base,
            )
        else:
            unit_cost = supplied_cost
            if unit_cost is None:
                unit_cost = fifo.latest_unit_cost(db, part_id=part.id, location_id=location.id)
            if unit_cost is None:
                raise errors.StateError(
                    "unit_cost is required: no existing FIFO layer to take the cost from"
                )
            layer = fifo.create(
                db,
                part_id=part.id,
                location_id=location.id,
                source_type=models.LayerSourceTypeEnum.ADJUSTMENT,
                source_ref=reason[:128],
                quantity=delta,
                unit_cost=unit_cost,
            )
            _apply_delta(db, part_id=part.id, location_id=location.id, delta=delta)
            total = fifo.to_cost(unit_cost * delta)
            txn = audit_services.record_transaction(
                db,
                data=audit_schemas.TransactionCreate(
                    transaction_type=audit_models.TransactionTypeEnum.ADJUSTMENT,
                    part_id=part.id,
                    location_id=location.id,
                    quantity=delta,
                    unit_cost=unit_cost,
                    total_cost=total,
                    reason=reason,
                    layers=[_created_row(layer)],
                ),
            )
            result = schemas.AdjustResult(
                transaction_id=txn.id,
                unit_cost=unit_cost,
                total_cost=total,
                average_unit_cost=unit_cost,
                fifo_layer_created=schemas.FifoLayerRead.model_validate(layer),
                **base,
            )
    logger.info(
        "Adjusted inventory",
        extra={**context, "before_quantity": before, "after_quantity": new_quantity},
    )
    return result


# ----------------------------------------------------------------------
# Reads
# ----------------------------------------------------------------------


def get_balance(db: Session, *, part_id: int, location_id: int) -> Optional[models.InventoryBalance]:
    return (
        db.query(models.InventoryBalance)
        .filter(
            models.InventoryBalance.part_id == part_id,
            models.InventoryBalance.location_id == location_id,
        )
        .first()
    )


def list_balances(
    db: Session,
    *,
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    include_empty: bool = False,
) -> List[models.InventoryBalance]:
    query = (
        db.query(models.InventoryBalance)
        .join(catalog_models.Part, catalog_models.Part.id == models.InventoryBalance.part_id)
        .join(catalog_models.Location, catalog_models.Location.id == models.InventoryBalance.location_id)
    )
    if not include_empty:
        query = query.filter(models.InventoryBalance.quantity_on_hand > 0)
    if part_id is not None:
        query = query.filter(models.InventoryBalance.part_id == part_id)
    if location_id is not None:
        query = query.filter(models.InventoryBalance.location_id == location_id)
    return query.order_by(catalog_models.Part.part_number, catalog_models.Location.name).all()


def check_consistency(db: Session, *, part_id: int, location_id: int) -> schemas.ConsistencyRead:
    balance = get_balance(db, part_id=part_id, location_id=location_id)
    on_hand = balance.quantity_on_hand if balance else 0
    layer_total = fifo.remaining_total(db, part_id=part_id, location_id=location_id)
    return schemas.ConsistencyRead(
        part_id=part_id,
        location_id=location_id,
        quantity_on_hand=on_hand,
        layer_remaining_total=layer_total,
        consistent=on_hand == layer_total,
    )
