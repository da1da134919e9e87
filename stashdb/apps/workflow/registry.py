from __future__ import annotations

from .guards import guard_po_fully_received, guard_po_partially_received

WORKFLOWS = {
    "purchase_order": {
        "transitions": {
            "Draft": {
                "Ordered": [],
            },
            "Ordered": {
                "Partially Received": [guard_po_partially_received],
                "Closed": [guard_po_fully_received],
            },
            "Partially Received": {
                "Closed": [guard_po_fully_received],
            },
            "Closed": {},
        }
    },
}
