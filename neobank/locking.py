"""
Account Locks

One lock per account id. hold() takes any number of ids and acquires them in
sorted order, so two transfers over the same pair of accounts in opposite
directions always lock in the same sequence.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Optional


class AccountLockManager:
    """Per-account mutual exclusion with a fixed acquisition order"""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[account_id] = lock
            return lock

    @contextmanager
    def hold(self, *account_ids: Optional[str]):
        """Lock every given account (None ids are ignored) for the block"""
        ordered = sorted({account_id for account_id in account_ids if account_id})
        acquired = []
        try:
            for account_id in ordered:
                lock = self._lock_for(account_id)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
