"""
Per (part, location) serialization of stock mutations.

Every ledger operation holds the lock of each pair it touches for the whole
unit of work, commit included, so two calls against the same pair cannot
both pass the stock precheck before either commits. Keys are acquired in
sorted order so a Move (two keys) cannot deadlock against another Move.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, Tuple

StockKey = Tuple[int, int]

_registry_lock = threading.Lock()
# One entry per pair ever touched; never pruned, so bounded by parts x locations.
_locks: Dict[StockKey, threading.Lock] = {}


def _lock_for(key: StockKey) -> threading.Lock:
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


@contextmanager
def stock_locks(*keys: StockKey) -> Iterator[None]:
    with ExitStack() as stack:
        for key in sorted(set(keys)):
            lock = _lock_for(key)
            lock.acquire()
            stack.callback(lock.release)
        yield
