from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stashdb.database import get_read_db

from . import models, schemas, services


router = APIRouter(prefix="/inventory", tags=["audit"])


@router.get("/transactions", response_model=List[schemas.TransactionRead])
def list_transactions(
    part_id: Optional[int] = None,
    location_id: Optional[int] = None,
    transaction_type: Optional[models.TransactionTypeEnum] = None,
    limit: int = Query(services.DEFAULT_HISTORY_LIMIT, ge=1, le=1000),
    db: Session = Depends(get_read_db),
):
    return services.list_transactions(
        db,
        part_id=part_id,
        location_id=location_id,
        transaction_type=transaction_type,
        limit=limit,
    )
