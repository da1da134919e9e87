from __future__ import annotations

import threading
import time

from stashdb.apps.inventory.locks import stock_locks


def test_same_key_is_serialized():
    events = []

    def worker(tag):
        with stock_locks((1, 1)):
            events.append(f"{tag}-in")
            time.sleep(0.05)
            events.append(f"{tag}-out")

    threads = [threading.Thread(target=worker, args=(tag,)) for tag in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    # no interleaving: each holder leaves before the next enters
    assert events[0][0] == events[1][0]
    assert events[2][0] == events[3][0]


def test_opposite_moves_do_not_deadlock():
    done = []

    def mover(keys):
        for _ in range(50):
            with stock_locks(*keys):
                pass
        done.append(keys)

    forward = threading.Thread(target=mover, args=([(7, 1), (7, 2)],))
    backward = threading.Thread(target=mover, args=([(7, 2), (7, 1)],))
    forward.start()
    backward.start()
    forward.join(timeout=5)
    backward.join(timeout=5)

    assert len(done) == 2


def test_duplicate_keys_do_not_self_deadlock():
    with stock_locks((3, 3), (3, 3)):
        pass
