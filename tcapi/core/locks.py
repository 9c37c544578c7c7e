"""
Process-wide locks for the stats engine.

- ``cycle_lock`` is held by an update cycle and by a period reset, so at most one
  of them runs at a time
- ``user_lock(user_id)`` serialises one user's cycle write against retirement and
  other state changes for that user
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from tcapi.core.exceptions import ConflictError

cycle_lock = threading.Lock()

_user_locks: Dict[int, threading.RLock] = {}
_user_locks_guard = threading.Lock()


def _get_user_lock(user_id: int) -> threading.RLock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.RLock()
            _user_locks[user_id] = lock
        return lock


@contextmanager
def user_lock(user_id: int) -> Iterator[None]:
    lock = _get_user_lock(user_id)
    with lock:
        yield


@contextmanager
def single_flight(operation: str, timeout: float) -> Iterator[None]:
    """Hold ``cycle_lock`` for the duration of ``operation``.

    Raises:
        ConflictError: another cycle or reset still holds the lock after ``timeout`` seconds
    """
    if not cycle_lock.acquire(timeout=timeout):
        raise ConflictError(
            f"Cannot start {operation}: another update cycle or reset is in progress",
            details={"operation": operation},
        )
    try:
        yield
    finally:
        cycle_lock.release()
