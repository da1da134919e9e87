from __future__ import annotations

from decimal import Decimal

import pytest

from stashdb import errors
from stashdb.apps.catalog import models as catalog_models
from stashdb.apps.catalog import schemas as catalog_schemas
from stashdb.apps.catalog import services as catalog_services
from stashdb.apps.inventory import schemas as inventory_schemas
from stashdb.apps.inventory import services as inventory_services


def _create_part(db, part_number="pn-100", **fields):
    part = catalog_services.create_part(
        db,
        payload=catalog_schemas.PartCreate(part_number=part_number, **fields),
    )
    db.commit()
    return part


def _create_location(db, name="Main Warehouse", type_=catalog_models.LocationTypeEnum.WAREHOUSE):
    location = catalog_services.create_location(
        db,
        payload=catalog_schemas.LocationCreate(name=name, type=type_),
    )
    db.commit()
    return location


def test_create_part_normalizes_part_number_and_applies_defaults(db_session):
    part = _create_part(db_session, part_number="  ab-12 ", description="Bracket")

    assert part.part_number == "AB-12"
    assert part.unit_of_measure == "EA"
    assert part.classification == "General"
    assert catalog_services.get_part_by_number(db_session, "ab-12").id == part.id


def test_duplicate_part_number_is_a_conflict(db_session):
    _create_part(db_session, part_number="PN-1")

    with pytest.raises(errors.ConflictError) as excinfo:
        _create_part(db_session, part_number="pn-1")

    assert excinfo.value.status_code == 409


def test_list_parts_filters_by_classification_and_search(db_session):
    _create_part(db_session, part_number="VLV-1", description="Ball valve", classification="Valves")
    _create_part(db_session, part_number="PMP-1", description="Pump housing", classification="Pumps")
    _create_part(db_session, part_number="VLV-2", description="Gate valve", classification="Valves")

    valves = catalog_services.list_parts(db_session, classification="Valves")
    assert [p.part_number for p in valves] == ["VLV-1", "VLV-2"]

    found = catalog_services.list_parts(db_session, search="housing")
    assert [p.part_number for p in found] == ["PMP-1"]

    assert catalog_services.list_classifications(db_session) == ["Pumps", "Valves"]


def test_update_part_requires_fields(db_session):
    part = _create_part(db_session)

    with pytest.raises(errors.ValidationError):
        catalog_services.update_part(db_session, part_id=part.id, payload=catalog_schemas.PartUpdate())

    updated = catalog_services.update_part(
        db_session,
        part_id=part.id,
        payload=catalog_schemas.PartUpdate(cost=Decimal("12.5"), classification="Fasteners"),
    )
    db_session.commit()
    assert updated.classification == "Fasteners"
    assert updated.cost == Decimal("12.5")


def test_get_missing_records_raise_not_found(db_session):
    with pytest.raises(errors.NotFoundError):
        catalog_services.get_part(db_session, 999)
    with pytest.raises(errors.NotFoundError) as excinfo:
        catalog_services.get_location(db_session, 999, label="Source location")
    assert excinfo.value.detail == "Source location not found"
    with pytest.raises(errors.NotFoundError):
        catalog_services.get_supplier(db_session, 999)


def test_delete_part_and_location_blocked_while_stocked(db_session):
    part = _create_part(db_session)
    location = _create_location(db_session)
    inventory_services.receive_inventory(
        db_session,
        payload=inventory_schemas.InventoryReceiveRequest(
            part_id=part.id,
            location_id=location.id,
            quantity=3,
            unit_cost=Decimal("4.00"),
        ),
    )

    with pytest.raises(errors.ConflictError) as excinfo:
        catalog_services.delete_part(db_session, part_id=part.id)
    assert excinfo.value.detail == "Cannot delete part with existing inventory"

    with pytest.raises(errors.ConflictError):
        catalog_services.delete_location(db_session, location_id=location.id)


def test_delete_unused_part_and_location(db_session):
    part = _create_part(db_session)
    location = _create_location(db_session)

    catalog_services.delete_part(db_session, part_id=part.id)
    catalog_services.delete_location(db_session, location_id=location.id)
    db_session.commit()

    assert catalog_services.list_parts(db_session) == []
    assert catalog_services.list_locations(db_session) == []


def test_location_and_supplier_names_are_unique(db_session):
    _create_location(db_session, name="Regional Hub", type_=catalog_models.LocationTypeEnum.REGIONAL_SITE)
    with pytest.raises(errors.ConflictError):
        _create_location(db_session, name="Regional Hub")

    catalog_services.create_supplier(db_session, payload=catalog_schemas.SupplierCreate(name="Acme"))
    db_session.commit()
    with pytest.raises(errors.ConflictError):
        catalog_services.create_supplier(db_session, payload=catalog_schemas.SupplierCreate(name="Acme"))


def test_update_location_type(db_session):
    location = _create_location(db_session)

    updated = catalog_services.update_location(
        db_session,
        location_id=location.id,
        payload=catalog_schemas.LocationUpdate(type=catalog_models.LocationTypeEnum.CONTRACT_MANUFACTURER),
    )
    db_session.commit()

    assert updated.type == catalog_models.LocationTypeEnum.CONTRACT_MANUFACTURER


@pytest.mark.parametrize("field", ["description", "unit_of_measure", "classification", "part_number"])
def test_update_part_rejects_null_for_required_columns(db_session, field):
    part = _create_part(db_session, description="Bracket")

    with pytest.raises(errors.ValidationError) as excinfo:
        catalog_services.update_part(
            db_session,
            part_id=part.id,
            payload=catalog_schemas.PartUpdate(**{field: None}),
        )

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == f"{field} cannot be null"
    db_session.rollback()
    assert catalog_services.get_part(db_session, part.id).description == "Bracket"


def test_renaming_part_onto_existing_number_is_a_conflict(db_session):
    _create_part(db_session, part_number="PN-1")
    other = _create_part(db_session, part_number="PN-2")

    with pytest.raises(errors.ConflictError):
        catalog_services.update_part(
            db_session,
            part_id=other.id,
            payload=catalog_schemas.PartUpdate(part_number="pn-1"),
        )


def test_blank_keys_are_rejected(db_session):
    with pytest.raises(errors.ValidationError):
        _create_part(db_session, part_number="   ")
    with pytest.raises(errors.ValidationError):
        _create_location(db_session, name="  ")
    with pytest.raises(errors.ValidationError):
        catalog_services.create_supplier(db_session, payload=catalog_schemas.SupplierCreate(name=" \t"))

    assert db_session.query(catalog_models.Part).count() == 0
    assert db_session.query(catalog_models.Location).count() == 0
    assert db_session.query(catalog_models.Supplier).count() == 0


def test_update_location_strips_and_rejects_blank_name(db_session):
    location = _create_location(db_session)

    with pytest.raises(errors.ValidationError):
        catalog_services.update_location(
            db_session,
            location_id=location.id,
            payload=catalog_schemas.LocationUpdate(name="   "),
        )

    renamed = catalog_services.update_location(
        db_session,
        location_id=location.id,
        payload=catalog_schemas.LocationUpdate(name="  Overflow Yard "),
    )
    db_session.commit()
    assert renamed.name == "Overflow Yard"


def test_update_part_rejects_blank_part_number(db_session):
    part = _create_part(db_session, part_number="PN-9")

    with pytest.raises(errors.ValidationError):
        catalog_services.update_part(
            db_session,
            part_id=part.id,
            payload=catalog_schemas.PartUpdate(part_number="  "),
        )
    db_session.rollback()
    assert catalog_services.get_part(db_session, part.id).part_number == "PN-9"


def test_delete_part_with_history_is_a_conflict(db_session):
    part = _create_part(db_session)
    location = _create_location(db_session)
    inventory_services.receive_inventory(
        db_session,
        payload=inventory_schemas.InventoryReceiveRequest(
            part_id=part.id, location_id=location.id, quantity=2, unit_cost=Decimal("1.00")
        ),
    )
    inventory_services.issue_inventory(
        db_session,
        payload=inventory_schemas.InventoryIssueRequest(part_id=part.id, location_id=location.id, quantity=2),
    )

    with pytest.raises(errors.ConflictError) as excinfo:
        catalog_services.delete_part(db_session, part_id=part.id)

    assert excinfo.value.detail == "Cannot delete part with inventory history"
