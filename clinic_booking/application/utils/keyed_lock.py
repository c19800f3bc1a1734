from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """One lock per key, created on demand. Multiple keys are taken in sorted order."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def _get_lock(self, key: Hashable) -> threading.Lock:
        with self._lock_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys), key=repr):
                stack.enter_context(self._get_lock(key))
            yield
