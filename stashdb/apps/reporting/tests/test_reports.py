from __future__ import annotations

from decimal import Decimal

import pytest

from stashdb.apps.catalog import models as catalog_models
from stashdb.apps.inventory import schemas as inventory_schemas
from stashdb.apps.inventory import services as inventory_services
from stashdb.apps.purchasing import models as purchasing_models
from stashdb.apps.reporting import services as reporting_services

LocationType = catalog_models.LocationTypeEnum


@pytest.fixture
def stocked(db_session):
    db = db_session
    warehouse = catalog_models.Location(name="Main Warehouse", type=LocationType.WAREHOUSE)
    regional = catalog_models.Location(name="North Site", type=LocationType.REGIONAL_SITE)
    contract = catalog_models.Location(name="Assembly Partner", type=LocationType.CONTRACT_MANUFACTURER)
    bracket = catalog_models.Part(part_number="BRACKET-1", description="Bracket")
    washer = catalog_models.Part(part_number="WASHER-1", description="Washer")
    clip = catalog_models.Part(part_number="CLIP-1", description="Clip")
    spring = catalog_models.Part(part_number="SPRING-1", description="Spring")
    db.add_all([warehouse, regional, contract, bracket, washer, clip, spring])
    db.commit()

    def receive(part, location, qty, cost):
        inventory_services.receive_inventory(
            db,
            payload=inventory_schemas.InventoryReceiveRequest(
                part_id=part.id, location_id=location.id, quantity=qty, unit_cost=Decimal(cost)
            ),
        )

    def issue(part, location, qty):
        inventory_services.issue_inventory(
            db,
            payload=inventory_schemas.InventoryIssueRequest(part_id=part.id, location_id=location.id, quantity=qty),
        )

    receive(bracket, warehouse, 10, "5.00")
    receive(bracket, warehouse, 5, "6.00")
    issue(bracket, warehouse, 12)
    receive(washer, regional, 4, "2.50")
    receive(clip, warehouse, 2, "1.00")
    issue(clip, warehouse, 2)
    receive(spring, contract, 20, "1.00")
    return {"warehouse": warehouse, "regional": regional, "contract": contract, "bracket": bracket}


def test_valuation_prices_only_open_layers(db_session, stocked):
    report = reporting_services.valuation(db_session)

    assert [(row.part_number, row.remaining_qty, row.unit_cost) for row in report.layers] == [
        ("BRACKET-1", 3, Decimal("6.0000")),
        ("SPRING-1", 20, Decimal("1.0000")),
        ("WASHER-1", 4, Decimal("2.5000")),
    ]
    assert [(row.part_number, row.location_name, row.total_qty, row.total_value) for row in report.summary] == [
        ("BRACKET-1", "Main Warehouse", 3, Decimal("18.0000")),
        ("SPRING-1", "Assembly Partner", 20, Decimal("20.0000")),
        ("WASHER-1", "North Site", 4, Decimal("10.0000")),
    ]
    assert report.grand_total == Decimal("48.0000")


def test_valuation_csv_has_header_rows_and_grand_total(db_session, stocked):
    text = reporting_services.valuation_csv(reporting_services.valuation(db_session))
    lines = text.splitlines()

    assert lines[0] == ",".join(reporting_services.CSV_HEADER)
    assert lines[1].startswith("BRACKET-1,Bracket,Main Warehouse,")
    assert ",6.00,18.00," in lines[1]
    assert lines[-1] == ",,,,,,Grand Total,48.00,"


def test_valuation_of_empty_ledger(db_session):
    report = reporting_services.valuation(db_session)

    assert report.layers == []
    assert report.grand_total == Decimal("0.0000")


def test_low_stock_excludes_empty_and_well_stocked_pairs(db_session, stocked):
    rows = reporting_services.low_stock(db_session)

    assert [(row.part_number, row.quantity_on_hand) for row in rows] == [("BRACKET-1", 3), ("WASHER-1", 4)]
    assert [row.part_number for row in reporting_services.low_stock(db_session, threshold=3)] == ["BRACKET-1"]
    assert len(reporting_services.low_stock(db_session, threshold=20)) == 3


def test_open_purchase_orders_skip_closed(db_session, stocked):
    supplier = catalog_models.Supplier(name="Fasteners Inc")
    db_session.add(supplier)
    db_session.flush()
    open_po = purchasing_models.PurchaseOrder(
        po_number="PO-2026-001",
        supplier_id=supplier.id,
        status=purchasing_models.PurchaseOrderStatusEnum.PARTIALLY_RECEIVED,
        line_items=[
            purchasing_models.PurchaseOrderLine(
                part_id=stocked["bracket"].id, quantity_ordered=8, quantity_received=3, unit_cost=Decimal("2.50")
            )
        ],
    )
    closed_po = purchasing_models.PurchaseOrder(
        po_number="PO-2026-002",
        supplier_id=supplier.id,
        status=purchasing_models.PurchaseOrderStatusEnum.CLOSED,
        line_items=[
            purchasing_models.PurchaseOrderLine(
                part_id=stocked["bracket"].id, quantity_ordered=1, quantity_received=1, unit_cost=Decimal("1.00")
            )
        ],
    )
    db_session.add_all([open_po, closed_po])
    db_session.commit()

    (row,) = reporting_services.open_purchase_orders(db_session)

    assert row.po_number == "PO-2026-001"
    assert row.status == "Partially Received"
    assert row.supplier_name == "Fasteners Inc"
    assert row.total_value == Decimal("20.0000")
    assert (row.total_qty_ordered, row.total_qty_received) == (8, 3)


def test_dashboard_totals_by_location_type(db_session, stocked):
    board = reporting_services.dashboard(db_session)

    assert [(row.type, row.total_qty, row.total_value) for row in board.inventory_by_type] == [
        ("Contract Manufacturer", 20, Decimal("20.0000")),
        ("Regional Site", 4, Decimal("10.0000")),
        ("Warehouse", 3, Decimal("18.0000")),
    ]
    assert [row.part_number for row in board.low_stock_alerts] == ["BRACKET-1", "WASHER-1"]
    assert board.open_purchase_orders == []
