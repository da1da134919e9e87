from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from stashdb.database import get_db, get_read_db

from . import schemas, services

router = APIRouter(prefix="", tags=["catalog"])


@router.get("/parts", response_model=List[schemas.PartRead])
def list_parts(
    classification: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_parts(db, classification=classification, search=search)


@router.get("/parts/classifications", response_model=List[str])
def list_classifications(db: Session = Depends(get_read_db)):
    return services.list_classifications(db)


@router.get("/parts/{part_id}", response_model=schemas.PartRead)
def get_part(part_id: int, db: Session = Depends(get_read_db)):
    return services.get_part(db, part_id)


@router.post("/parts", response_model=schemas.PartRead, status_code=status.HTTP_201_CREATED)
def create_part(payload: schemas.PartCreate, db: Session = Depends(get_db)):
    part = services.create_part(db, payload=payload)
    db.commit()
    db.refresh(part)
    return part


@router.put("/parts/{part_id}", response_model=schemas.PartRead)
def update_part(part_id: int, payload: schemas.PartUpdate, db: Session = Depends(get_db)):
    part = services.update_part(db, part_id=part_id, payload=payload)
    db.commit()
    db.refresh(part)
    return part


@router.delete("/parts/{part_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_part(part_id: int, db: Session = Depends(get_db)):
    services.delete_part(db, part_id=part_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/locations", response_model=List[schemas.LocationRead])
def list_locations(db: Session = Depends(get_read_db)):
    return services.list_locations(db)


@router.get("/locations/{location_id}", response_model=schemas.LocationRead)
def get_location(location_id: int, db: Session = Depends(get_read_db)):
    return services.get_location(db, location_id)


@router.post("/locations", response_model=schemas.LocationRead, status_code=status.HTTP_201_CREATED)
def create_location(payload: schemas.LocationCreate, db: Session = Depends(get_db)):
    location = services.create_location(db, payload=payload)
    db.commit()
    db.refresh(location)
    return location


@router.put("/locations/{location_id}", response_model=schemas.LocationRead)
def update_location(location_id: int, payload: schemas.LocationUpdate, db: Session = Depends(get_db)):
    location = services.update_location(db, location_id=location_id, payload=payload)
    db.commit()
    db.refresh(location)
    return location


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(location_id: int, db: Session = Depends(get_db)):
    services.delete_location(db, location_id=location_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/suppliers", response_model=List[schemas.SupplierRead])
def list_suppliers(db: Session = Depends(get_read_db)):
    return services.list_suppliers(db)


@router.post("/suppliers", response_model=schemas.SupplierRead, status_code=status.HTTP_201_CREATED)
def create_supplier(payload: schemas.SupplierCreate, db: Session = Depends(get_db)):
    supplier = services.create_supplier(db, payload=payload)
    db.commit()
    db.refresh(supplier)
    return supplier
