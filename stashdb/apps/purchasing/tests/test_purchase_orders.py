from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from stashdb import errors
from stashdb.apps.audit import models as audit_models
from stashdb.apps.catalog import models as catalog_models
from stashdb.apps.inventory import fifo
from stashdb.apps.inventory import models as inventory_models
from stashdb.apps.inventory import services as inventory_services
from stashdb.apps.purchasing import models as purchasing_models
from stashdb.apps.purchasing import schemas as purchasing_schemas
from stashdb.apps.purchasing import services as purchasing_services

Status = purchasing_models.PurchaseOrderStatusEnum


def _seed(db):
    supplier = catalog_models.Supplier(name="Acme Supply")
    bolt = catalog_models.Part(part_number="BOLT-1", description="Bolt")
    nut = catalog_models.Part(part_number="NUT-1", description="Nut")
    dock = catalog_models.Location(name="Receiving Dock", type=catalog_models.LocationTypeEnum.WAREHOUSE)
    db.add_all([supplier, bolt, nut, dock])
    db.commit()
    return supplier, bolt, nut, dock


def _create_po(db, supplier, *lines):
    po = purchasing_services.create_purchase_order(
        db,
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=supplier.id,
            line_items=[
                purchasing_schemas.PurchaseOrderLineCreate(
                    part_id=part.id, quantity_ordered=qty, unit_cost=Decimal(cost)
                )
                for part, qty, cost in lines
            ],
        ),
    )
    db.commit()
    return po


def _order(db, po):
    purchasing_services.set_purchase_order_status(db, purchase_order_id=po.id, status=Status.ORDERED)
    db.commit()


def _receive(db, po, location_id, *items):
    return purchasing_services.receive_purchase_order(
        db,
        purchase_order_id=po.id,
        payload=purchasing_schemas.PurchaseOrderReceiveRequest(
            location_id=location_id,
            items=[
                purchasing_schemas.ReceiveItem(line_item_id=line.id, quantity_received=qty) for line, qty in items
            ],
        ),
    )


def _ledger_counts(db):
    return (
        db.query(inventory_models.FifoLayer).count(),
        db.query(inventory_models.InventoryBalance).count(),
        db.query(audit_models.InventoryTransaction).count(),
    )


def test_create_po_numbers_sequentially_and_starts_in_draft(db_session):
    supplier, bolt, nut, _ = _seed(db_session)
    year = datetime.now(timezone.utc).year

    first = _create_po(db_session, supplier, (bolt, 10, "1.25"))
    second = _create_po(db_session, supplier, (nut, 5, "0.40"), (bolt, 1, "1.25"))

    assert first.po_number == f"PO-{year}-001"
    assert second.po_number == f"PO-{year}-002"
    assert first.status == Status.DRAFT
    assert [line.remaining for line in second.line_items] == [5, 1]
    listed = purchasing_services.list_purchase_orders(db_session)
    assert [po.id for po in listed] == [second.id, first.id]


def test_create_po_continues_from_last_number(db_session):
    supplier, bolt, _, _ = _seed(db_session)
    db_session.add(
        purchasing_models.PurchaseOrder(po_number="PO-2019-041", supplier_id=supplier.id, status=Status.CLOSED)
    )
    db_session.commit()

    po = _create_po(db_session, supplier, (bolt, 1, "1.00"))

    assert po.po_number.endswith("-042")


def test_create_po_validates_supplier_lines_and_parts(db_session):
    supplier, bolt, _, _ = _seed(db_session)

    with pytest.raises(errors.NotFoundError):
        purchasing_services.create_purchase_order(
            db_session,
            payload=purchasing_schemas.PurchaseOrderCreate(supplier_id=999, line_items=[]),
        )
    with pytest.raises(errors.ValidationError):
        purchasing_services.create_purchase_order(
            db_session,
            payload=purchasing_schemas.PurchaseOrderCreate(supplier_id=supplier.id, line_items=[]),
        )
    with pytest.raises(errors.NotFoundError):
        purchasing_services.create_purchase_order(
            db_session,
            payload=purchasing_schemas.PurchaseOrderCreate(
                supplier_id=supplier.id,
                line_items=[
                    purchasing_schemas.PurchaseOrderLineCreate(part_id=999, quantity_ordered=1, unit_cost=Decimal("1"))
                ],
            ),
        )


def test_draft_po_cannot_be_received(db_session):
    supplier, bolt, _, dock = _seed(db_session)
    po = _create_po(db_session, supplier, (bolt, 10, "1.25"))

    with pytest.raises(errors.StateError) as excinfo:
        _receive(db_session, po, dock.id, (po.line_items[0], 1))

    assert excinfo.value.detail == "PO must be in Ordered status to receive"
    assert _ledger_counts(db_session) == (0, 0, 0)


def test_partial_then_full_receipt_moves_status_to_closed(db_session):
    supplier, bolt, nut, dock = _seed(db_session)
    po = _create_po(db_session, supplier, (bolt, 10, "1.25"), (nut, 4, "0.40"))
    _order(db_session, po)
    bolt_line, nut_line = po.line_items

    result = _receive(db_session, po, dock.id, (bolt_line, 6))

    assert result.po_status == Status.PARTIALLY_RECEIVED
    (receipt,) = result.received
    assert receipt.fifo_layer_created.source_ref == po.po_number
    assert receipt.total_cost == Decimal("7.5000")
    txn = db_session.get(audit_models.InventoryTransaction, receipt.transaction_id)
    assert txn.reference_type == audit_models.ReferenceTypeEnum.PO
    assert txn.reference_id == po.id

    result = _receive(db_session, po, dock.id, (bolt_line, 4), (nut_line, 4))

    assert result.po_status == Status.CLOSED
    refreshed = purchasing_services.get_purchase_order(db_session, po.id)
    assert [line.quantity_received for line in refreshed.line_items] == [10, 4]
    assert inventory_services.get_balance(db_session, part_id=bolt.id, location_id=dock.id).quantity_on_hand == 10

    with pytest.raises(errors.StateError) as excinfo:
        _receive(db_session, po, dock.id, (bolt_line, 1))
    assert excinfo.value.detail == "Cannot receive against a closed PO"


def test_invalid_item_aborts_whole_batch(db_session):
    supplier, bolt, nut, dock = _seed(db_session)
    po = _create_po(db_session, supplier, (bolt, 10, "1.25"), (nut, 4, "0.40"))
    _order(db_session, po)
    bolt_line, nut_line = po.line_items
    before = _ledger_counts(db_session)

    with pytest.raises(errors.ValidationError) as excinfo:
        _receive(db_session, po, dock.id, (bolt_line, 5), (nut_line, 9))

    assert "Only 4 remaining" in excinfo.value.detail
    assert _ledger_counts(db_session) == before
    refreshed = purchasing_services.get_purchase_order(db_session, po.id)
    assert refreshed.status == Status.ORDERED
    assert [line.quantity_received for line in refreshed.line_items] == [0, 0]
    assert fifo.list_layers(db_session, include_depleted=True) == []


def test_receive_rejects_unknown_line_and_location(db_session):
    supplier, bolt, _, dock = _seed(db_session)
    po = _create_po(db_session, supplier, (bolt, 10, "1.25"))
    other = _create_po(db_session, supplier, (bolt, 10, "1.25"))
    _order(db_session, po)

    with pytest.raises(errors.NotFoundError):
        _receive(db_session, po, dock.id, (other.line_items[0], 1))
    with pytest.raises(errors.NotFoundError):
        _receive(db_session, po, 999, (po.line_items[0], 1))
    with pytest.raises(errors.ValidationError):
        _receive(db_session, po, dock.id, (po.line_items[0], 0))
    assert _ledger_counts(db_session) == (0, 0, 0)


def test_manual_status_change_cannot_contradict_receipts(db_session):
    supplier, bolt, _, _ = _seed(db_session)
    po = _create_po(db_session, supplier, (bolt, 10, "1.25"))

    with pytest.raises(errors.StateError) as excinfo:
        purchasing_services.set_purchase_order_status(db_session, purchase_order_id=po.id, status=Status.CLOSED)
    assert excinfo.value.detail == "Cannot transition from Draft to Closed. Allowed: Ordered"
    db_session.rollback()

    _order(db_session, po)
    with pytest.raises(errors.StateError) as excinfo:
        purchasing_services.set_purchase_order_status(db_session, purchase_order_id=po.id, status=Status.CLOSED)
    assert excinfo.value.detail == "outstanding quantity remains on the order"
    db_session.rollback()
    with pytest.raises(errors.StateError) as excinfo:
        purchasing_services.set_purchase_order_status(db_session, purchase_order_id=po.id, status=Status.DRAFT)
    assert excinfo.value.detail == (
        "Cannot transition from Ordered to Draft. Allowed: Partially Received, Closed"
    )
