import asyncio
from typing import Dict, Tuple


class KeyedLocks:
    """One asyncio.Lock per (company, collection) pair."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def get(self, company: str, collection: str) -> asyncio.Lock:
        key = (company, collection)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
