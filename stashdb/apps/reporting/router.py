from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from stashdb.database import get_read_db

from . import schemas, services

router = APIRouter(prefix="", tags=["reporting"])


@router.get("/reports/valuation", response_model=schemas.ValuationReport)
def valuation_report(
    format: Optional[str] = Query(None, pattern="^(json|csv)$"),
    db: Session = Depends(get_read_db),
):
    report = services.valuation(db)
    if format == "csv":
        return Response(
            content=services.valuation_csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=fifo_valuation_report.csv"},
        )
    return report


@router.get("/reports/low-stock", response_model=List[schemas.LowStockRow])
def low_stock_report(
    threshold: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_read_db),
):
    return services.low_stock(db, threshold=threshold)


@router.get("/reports/open-purchase-orders", response_model=List[schemas.OpenPurchaseOrderRow])
def open_purchase_orders_report(db: Session = Depends(get_read_db)):
    return services.open_purchase_orders(db)


@router.get("/dashboard", response_model=schemas.DashboardRead)
def dashboard(db: Session = Depends(get_read_db)):
    return services.dashboard(db)
