from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from stashdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocationTypeEnum(str, enum.Enum):
    WAREHOUSE = "Warehouse"
    REGIONAL_SITE = "Regional Site"
    CONTRACT_MANUFACTURER = "Contract Manufacturer"


class Part(Base):
    __tablename__ = "parts"
    __table_args__ = (UniqueConstraint("part_number", name="uq_parts_part_number"),)

    id = Column(Integer, primary_key=True, index=True)
    part_number = Column(String(64), nullable=False, index=True)
    description = Column(String(255), nullable=False, default="")
    unit_of_measure = Column(String(16), nullable=False, default="EA")
    classification = Column(String(64), nullable=False, default="General", index=True)
    cost = Column(Numeric(12, 4), nullable=True)
    manufacturer = Column(String(128), nullable=True)
    mfg_part_number = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Part id={self.id} part_number={self.part_number}>"


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (UniqueConstraint("name", name="uq_locations_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False, index=True)
    type = Column(
        SAEnum(
            LocationTypeEnum,
            name="location_type_enum",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name}>"


class Supplier(Base):
    __tablename__ = "suppliers"
    __table_args__ = (UniqueConstraint("name", name="uq_suppliers_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
