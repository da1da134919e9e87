from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stashdb.database import get_db, get_read_db

from . import models, schemas, services

router = APIRouter(prefix="/purchase-orders", tags=["purchasing"])


@router.get("", response_model=List[schemas.PurchaseOrderRead])
def list_purchase_orders(
    status_filter: Optional[models.PurchaseOrderStatusEnum] = Query(None, alias="status"),
    db: Session = Depends(get_read_db),
):
    return services.list_purchase_orders(db, status=status_filter)


@router.get("/{purchase_order_id}", response_model=schemas.PurchaseOrderRead)
def get_purchase_order(purchase_order_id: int, db: Session = Depends(get_read_db)):
    return services.get_purchase_order(db, purchase_order_id)


@router.post("", response_model=schemas.PurchaseOrderRead, status_code=status.HTTP_201_CREATED)
def create_purchase_order(payload: schemas.PurchaseOrderCreate, db: Session = Depends(get_db)):
    po = services.create_purchase_order(db, payload=payload)
    db.commit()
    db.refresh(po)
    return po


@router.put("/{purchase_order_id}/status", response_model=schemas.PurchaseOrderRead)
def set_purchase_order_status(
    purchase_order_id: int,
    payload: schemas.PurchaseOrderStatusUpdate,
    db: Session = Depends(get_db),
):
    po = services.set_purchase_order_status(db, purchase_order_id=purchase_order_id, status=payload.status)
    db.commit()
    db.refresh(po)
    return po


@router.post("/{purchase_order_id}/receive", response_model=schemas.PurchaseOrderReceiveResult)
def receive_purchase_order(
    purchase_order_id: int,
    payload: schemas.PurchaseOrderReceiveRequest,
    db: Session = Depends(get_db),
):
    return services.receive_purchase_order(db, purchase_order_id=purchase_order_id, payload=payload)
