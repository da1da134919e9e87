from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stashdb.database import get_db, get_read_db

from . import fifo, schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=List[schemas.BalanceRead])
def list_stock_levels(
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    include_empty: bool = False,
    db: Session = Depends(get_read_db),
):
    return services.list_balances(db, part_id=part_id, location_id=location_id, include_empty=include_empty)


@router.get("/fifo-layers", response_model=List[schemas.FifoLayerRead])
def list_fifo_layers(
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    include_depleted: bool = False,
    db: Session = Depends(get_read_db),
):
    return fifo.list_layers(db, part_id=part_id, location_id=location_id, include_depleted=include_depleted)


# Ledger operations commit their own unit of work.


@router.post("/issue", response_model=schemas.ConsumptionResult, status_code=status.HTTP_201_CREATED)
def issue_inventory(payload: schemas.InventoryIssueRequest, db: Session = Depends(get_db)):
    return services.issue_inventory(db, payload=payload)


@router.post("/move", response_model=schemas.MoveResult, status_code=status.HTTP_201_CREATED)
def move_inventory(payload: schemas.InventoryMoveRequest, db: Session = Depends(get_db)):
    return services.move_inventory(db, payload=payload)


@router.post("/dispose", response_model=schemas.ConsumptionResult, status_code=status.HTTP_201_CREATED)
def dispose_inventory(payload: schemas.InventoryDisposeRequest, db: Session = Depends(get_db)):
    return services.dispose_inventory(db, payload=payload)


@router.post("/return", response_model=schemas.ReturnResult, status_code=status.HTTP_201_CREATED)
def return_inventory(payload: schemas.InventoryReturnRequest, db: Session = Depends(get_db)):
    return services.return_inventory(db, payload=payload)


@router.post("/adjust", response_model=schemas.AdjustResult)
def adjust_inventory(payload: schemas.InventoryAdjustRequest, db: Session = Depends(get_db)):
    return services.adjust_inventory(db, payload=payload)
