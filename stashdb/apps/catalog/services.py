from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stashdb import errors
from stashdb.apps.inventory import models as inventory_models

from . import models, schemas


# unique_violation, foreign_key_violation
CONFLICT_PGCODES = {"23505", "23503"}
CONFLICT_MARKERS = ("UNIQUE constraint failed", "FOREIGN KEY constraint failed")

# Columns a PATCH-style update may not clear.
REQUIRED_PART_FIELDS = ("part_number", "description", "unit_of_measure", "classification")


def _require_key(value: Optional[str], *, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise errors.ValidationError(f"{field} must not be blank")
    return cleaned


def _normalize_part_number(part_number: str) -> str:
    return (part_number or "").strip().upper()


def _is_conflict(exc: IntegrityError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode:
        return pgcode in CONFLICT_PGCODES
    message = str(exc.orig)
    return any(marker in message for marker in CONFLICT_MARKERS)


def _flush_or_conflict(db: Session, *, detail: str) -> None:
    """Flush; duplicate keys and referenced rows become 409, anything else 400."""
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if _is_conflict(exc):
            raise errors.ConflictError(detail) from exc
        raise errors.ValidationError(f"Invalid record: {exc.orig}") from exc


def _stock_on_hand(db: Session, *, part_id: Optional[int] = None, location_id: Optional[int] = None) -> int:
    query = db.query(func.coalesce(func.sum(inventory_models.InventoryBalance.quantity_on_hand), 0))
    if part_id is not None:
        query = query.filter(inventory_models.InventoryBalance.part_id == part_id)
    if location_id is not None:
        query = query.filter(inventory_models.InventoryBalance.location_id == location_id)
    return int(query.scalar() or 0)


# ----------------------------------------------------------------------
# Parts
# ----------------------------------------------------------------------


def get_part(db: Session, part_id: int) -> models.Part:
    part = db.get(models.Part, part_id)
    if not part:
        raise errors.NotFoundError("Part not found")
    return part


def get_part_by_number(db: Session, part_number: str) -> Optional[models.Part]:
    return (
        db.query(models.Part)
        .filter(models.Part.part_number == _normalize_part_number(part_number))
        .first()
    )


def list_parts(
    db: Session,
    *,
    classification: Optional[str] = None,
    search: Optional[str] = None,
) -> List[models.Part]:
    query = db.query(models.Part)
    if classification:
        query = query.filter(models.Part.classification == classification)
    if search:
        term = f"%{search}%"
        query = query.filter(
            or_(
                models.Part.part_number.ilike(term),
                models.Part.description.ilike(term),
                models.Part.manufacturer.ilike(term),
            )
        )
    return query.order_by(models.Part.part_number).all()


def list_classifications(db: Session) -> List[str]:
    rows = db.query(models.Part.classification).distinct().order_by(models.Part.classification).all()
    return [row[0] for row in rows]


def create_part(db: Session, *, payload: schemas.PartCreate) -> models.Part:
    part_number = _normalize_part_number(_require_key(payload.part_number, field="part_number"))
    if get_part_by_number(db, part_number):
        raise errors.ConflictError("Part number already exists")
    part = models.Part(**payload.model_dump(exclude={"part_number"}), part_number=part_number)
    db.add(part)
    _flush_or_conflict(db, detail="Part number already exists")
    return part


def update_part(db: Session, *, part_id: int, payload: schemas.PartUpdate) -> models.Part:
    part = get_part(db, part_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise errors.ValidationError("No fields to update")
    for field in REQUIRED_PART_FIELDS:
        if field in changes and changes[field] is None:
            raise errors.ValidationError(f"{field} cannot be null")
    if "part_number" in changes:
        changes["part_number"] = _normalize_part_number(_require_key(changes["part_number"], field="part_number"))
    for field, value in changes.items():
        setattr(part, field, value)
    _flush_or_conflict(db, detail="Part number already exists")
    return part


def delete_part(db: Session, *, part_id: int) -> None:
    part = get_part(db, part_id)
    if _stock_on_hand(db, part_id=part.id) > 0:
        raise errors.ConflictError("Cannot delete part with existing inventory")
    db.delete(part)
    _flush_or_conflict(db, detail="Cannot delete part with inventory history")


# ----------------------------------------------------------------------
# Locations
# ----------------------------------------------------------------------


def get_location(db: Session, location_id: int, *, label: str = "Location") -> models.Location:
    location = db.get(models.Location, location_id)
    if not location:
        raise errors.NotFoundError(f"{label} not found")
    return location


def list_locations(db: Session) -> List[models.Location]:
    return db.query(models.Location).order_by(models.Location.name).all()


def create_location(db: Session, *, payload: schemas.LocationCreate) -> models.Location:
    name = _require_key(payload.name, field="name")
    if db.query(models.Location).filter(models.Location.name == name).first():
        raise errors.ConflictError("Location name already exists")
    location = models.Location(name=name, type=payload.type)
    db.add(location)
    _flush_or_conflict(db, detail="Location name already exists")
    return location


def update_location(db: Session, *, location_id: int, payload: schemas.LocationUpdate) -> models.Location:
    location = get_location(db, location_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise errors.ValidationError("No fields to update")
    if "name" in changes:
        changes["name"] = _require_key(changes["name"], field="name")
    for field, value in changes.items():
        setattr(location, field, value)
    _flush_or_conflict(db, detail="Location name already exists")
    return location


def delete_location(db: Session, *, location_id: int) -> None:
    location = get_location(db, location_id)
    if _stock_on_hand(db, location_id=location.id) > 0:
        raise errors.ConflictError("Cannot delete location with existing inventory")
    db.delete(location)
    _flush_or_conflict(db, detail="Cannot delete location with inventory history")


# ----------------------------------------------------------------------
# Suppliers
# ----------------------------------------------------------------------


def get_supplier(db: Session, supplier_id: int) -> models.Supplier:
    supplier = db.get(models.Supplier, supplier_id)
    if not supplier:
        raise errors.NotFoundError("Supplier not found")
    return supplier


def list_suppliers(db: Session) -> List[models.Supplier]:
    return db.query(models.Supplier).order_by(models.Supplier.name).all()


def create_supplier(db: Session, *, payload: schemas.SupplierCreate) -> models.Supplier:
    name = _require_key(payload.name, field="name")
    if db.query(models.Supplier).filter(models.Supplier.name == name).first():
        raise errors.ConflictError("Supplier name already exists")
    supplier = models.Supplier(name=name)
    db.add(supplier)
    _flush_or_conflict(db, detail="Supplier name already exists")
    return supplier
