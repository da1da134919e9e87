from __future__ import annotations

from typing import Any, Dict, Iterable, List

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _receipt_counts(obj: Any) -> Iterable[tuple]:
    for line in _get_value(obj, "line_items") or []:
        yield (_get_value(line, "quantity_ordered") or 0, _get_value(line, "quantity_received") or 0)


def guard_po_partially_received(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    counts = list(_receipt_counts(after_obj))
    if not any(received > 0 for _, received in counts):
        return [{"field": "line_items", "reason": "no quantity has been received yet"}]
    if counts and all(received >= ordered for ordered, received in counts):
        return [{"field": "line_items", "reason": "every line is fully received; close the order instead"}]
    return []


def guard_po_fully_received(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    counts = list(_receipt_counts(after_obj))
    if not counts:
        return [{"field": "line_items", "reason": "order has no line items"}]
    if any(received < ordered for ordered, received in counts):
        return [{"field": "line_items", "reason": "outstanding quantity remains on the order"}]
    return []
