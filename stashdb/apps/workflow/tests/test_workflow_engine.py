from __future__ import annotations

import pytest

from stashdb.apps.workflow import TransitionError, apply_transition
from stashdb.apps.workflow.engine import allowed_targets


def _po(*lines):
    return {"line_items": [{"quantity_ordered": ordered, "quantity_received": received} for ordered, received in lines]}


def test_draft_can_be_ordered(db_session):
    apply_transition(
        db_session,
        entity_type="purchase_order",
        entity_id="1",
        from_state="Draft",
        to_state="Ordered",
        before_obj=_po((5, 0)),
        after_obj=_po((5, 0)),
    )


def test_closed_is_terminal(db_session):
    assert allowed_targets("purchase_order", "Closed") == []

    with pytest.raises(TransitionError) as excinfo:
        apply_transition(
            db_session,
            entity_type="purchase_order",
            entity_id="1",
            from_state="Closed",
            to_state="Ordered",
            before_obj=_po((5, 5)),
            after_obj=_po((5, 5)),
        )

    assert excinfo.value.code == "invalid_transition"
    assert "Cannot transition from Closed to Ordered" in str(excinfo.value)


def test_close_requires_every_line_received(db_session):
    with pytest.raises(TransitionError) as excinfo:
        apply_transition(
            db_session,
            entity_type="purchase_order",
            entity_id="1",
            from_state="Ordered",
            to_state="Closed",
            before_obj=_po((5, 5), (3, 1)),
            after_obj=_po((5, 5), (3, 1)),
        )

    assert excinfo.value.code == "missing_requirements"
    assert {item["field"] for item in excinfo.value.detail} == {"line_items"}

    apply_transition(
        db_session,
        entity_type="purchase_order",
        entity_id="1",
        from_state="Partially Received",
        to_state="Closed",
        before_obj=_po((5, 5), (3, 3)),
        after_obj=_po((5, 5), (3, 3)),
    )


@pytest.mark.parametrize("lines", [((5, 0),), ((5, 5),)])
def test_partially_received_requires_some_but_not_all(db_session, lines):
    with pytest.raises(TransitionError):
        apply_transition(
            db_session,
            entity_type="purchase_order",
            entity_id="1",
            from_state="Ordered",
            to_state="Partially Received",
            before_obj=_po(*lines),
            after_obj=_po(*lines),
        )


def test_unknown_workflow_is_rejected(db_session):
    with pytest.raises(TransitionError) as excinfo:
        apply_transition(
            db_session,
            entity_type="sales_order",
            entity_id="1",
            from_state="Draft",
            to_state="Ordered",
            before_obj={},
            after_obj={},
        )

    assert excinfo.value.detail[0]["field"] == "entity_type"
