"""
Inventory module.

FIFO cost layers, on-hand balances and the ledger operations that keep
them in step.
"""

from . import models  # noqa: F401
