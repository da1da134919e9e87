"""
Read-only reporting over committed ledger state.

Values are computed from FIFO layers with stock remaining, so a report
always prices inventory at the cost of the batches actually on the shelf.
"""

from __future__ import annotations

import csv
import io
import os
from collections import OrderedDict
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from stashdb.apps.catalog import models as catalog_models
from stashdb.apps.inventory import fifo
from stashdb.apps.inventory import models as inventory_models
from stashdb.apps.purchasing import models as purchasing_models

from . import schemas

LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

CSV_HEADER = [
    "Part Number",
    "Description",
    "Location",
    "Source",
    "Original Qty",
    "Remaining Qty",
    "Unit Cost",
    "Total Value",
    "Receipt Date",
]


def _open_layers(db: Session) -> List[inventory_models.FifoLayer]:
    return (
        db.query(inventory_models.FifoLayer)
        .join(catalog_models.Part, catalog_models.Part.id == inventory_models.FifoLayer.part_id)
        .join(catalog_models.Location, catalog_models.Location.id == inventory_models.FifoLayer.location_id)
        .filter(inventory_models.FifoLayer.remaining_qty > 0)
        .order_by(
            catalog_models.Part.part_number,
            catalog_models.Location.name,
            inventory_models.FifoLayer.created_at.asc(),
            inventory_models.FifoLayer.id.asc(),
        )
        .all()
    )


def _layer_value(layer: inventory_models.FifoLayer) -> Decimal:
    return fifo.to_cost(fifo.to_cost(layer.unit_cost) * layer.remaining_qty)


def valuation(db: Session) -> schemas.ValuationReport:
    rows: List[schemas.ValuationLayerRow] = []
    summary: "OrderedDict[tuple, schemas.ValuationSummaryRow]" = OrderedDict()
    for layer in _open_layers(db):
        value = _layer_value(layer)
        rows.append(
            schemas.ValuationLayerRow(
                layer_id=layer.id,
                part_id=layer.part_id,
                part_number=layer.part.part_number,
                part_description=layer.part.description,
                classification=layer.part.classification,
                location_id=layer.location_id,
                location_name=layer.location.name,
                source_type=layer.source_type.value,
                source_ref=layer.source_ref,
                original_qty=layer.original_qty,
                remaining_qty=layer.remaining_qty,
                unit_cost=fifo.to_cost(layer.unit_cost),
                total_value=value,
                receipt_date=layer.created_at,
            )
        )
        key = (layer.part_id, layer.location_id)
        entry = summary.get(key)
        if entry is None:
            summary[key] = schemas.ValuationSummaryRow(
                part_id=layer.part_id,
                part_number=layer.part.part_number,
                part_description=layer.part.description,
                location_id=layer.location_id,
                location_name=layer.location.name,
                total_qty=layer.remaining_qty,
                total_value=value,
            )
        else:
            entry.total_qty += layer.remaining_qty
            entry.total_value = fifo.to_cost(entry.total_value + value)

    grand_total = fifo.to_cost(sum((entry.total_value for entry in summary.values()), Decimal("0")))
    return schemas.ValuationReport(layers=rows, summary=list(summary.values()), grand_total=grand_total)


def valuation_csv(report: schemas.ValuationReport) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in report.layers:
        writer.writerow(
            [
                row.part_number,
                row.part_description or "",
                row.location_name,
                row.source_ref or "",
                row.original_qty,
                row.remaining_qty,
                f"{row.unit_cost:.2f}",
                f"{row.total_value:.2f}",
                row.receipt_date.isoformat(),
            ]
        )
    writer.writerow([])
    writer.writerow(["", "", "", "", "", "", "Grand Total", f"{report.grand_total:.2f}", ""])
    return buffer.getvalue()


def low_stock(db: Session, *, threshold: Optional[int] = None) -> List[schemas.LowStockRow]:
    limit = LOW_STOCK_THRESHOLD if threshold is None else threshold
    balances = (
        db.query(inventory_models.InventoryBalance)
        .filter(
            inventory_models.InventoryBalance.quantity_on_hand > 0,
            inventory_models.InventoryBalance.quantity_on_hand <= limit,
        )
        .order_by(inventory_models.InventoryBalance.quantity_on_hand.asc(), inventory_models.InventoryBalance.id.asc())
        .all()
    )
    return [
        schemas.LowStockRow(
            part_id=balance.part_id,
            part_number=balance.part_number,
            description=balance.part_description,
            location_id=balance.location_id,
            location_name=balance.location_name,
            quantity_on_hand=balance.quantity_on_hand,
        )
        for balance in balances
    ]


def open_purchase_orders(db: Session) -> List[schemas.OpenPurchaseOrderRow]:
    orders = (
        db.query(purchasing_models.PurchaseOrder)
        .filter(purchasing_models.PurchaseOrder.status != purchasing_models.PurchaseOrderStatusEnum.CLOSED)
        .order_by(purchasing_models.PurchaseOrder.created_at.desc(), purchasing_models.PurchaseOrder.id.desc())
        .all()
    )
    rows = []
    for po in orders:
        total_value = sum(
            (fifo.to_cost(line.unit_cost) * line.quantity_ordered for line in po.line_items),
            Decimal("0"),
        )
        rows.append(
            schemas.OpenPurchaseOrderRow(
                id=po.id,
                po_number=po.po_number,
                status=po.status.value,
                supplier_name=po.supplier_name,
                expected_delivery_date=po.expected_delivery_date,
                total_value=fifo.to_cost(total_value),
                total_qty_ordered=sum(line.quantity_ordered for line in po.line_items),
                total_qty_received=sum(line.quantity_received for line in po.line_items),
            )
        )
    return rows


def inventory_by_location_type(db: Session) -> List[schemas.LocationTypeTotal]:
    totals: "OrderedDict[str, dict]" = OrderedDict()
    location_types = db.query(catalog_models.Location.type).distinct().all()
    for (location_type,) in sorted(location_types, key=lambda row: row[0].value):
        totals[location_type.value] = {"qty": 0, "value": Decimal("0")}

    for balance in db.query(inventory_models.InventoryBalance).all():
        bucket = totals.setdefault(balance.location_type, {"qty": 0, "value": Decimal("0")})
        bucket["qty"] += balance.quantity_on_hand
    for layer in _open_layers(db):
        bucket = totals.setdefault(layer.location.type.value, {"qty": 0, "value": Decimal("0")})
        bucket["value"] += _layer_value(layer)

    return [
        schemas.LocationTypeTotal(type=name, total_qty=bucket["qty"], total_value=fifo.to_cost(bucket["value"]))
        for name, bucket in totals.items()
    ]


def dashboard(db: Session) -> schemas.DashboardRead:
    return schemas.DashboardRead(
        inventory_by_type=inventory_by_location_type(db),
        low_stock_alerts=low_stock(db),
        open_purchase_orders=open_purchase_orders(db),
    )
