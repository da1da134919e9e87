"""Stash: multi-location parts inventory with FIFO cost layers."""
