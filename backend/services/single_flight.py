"""
In-flight request de-duplication.

Concurrent callers asking for the same key share one execution of the
fetch function: the first caller runs it, the rest wait and receive the
same result (or the same exception).
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, Tuple


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.waiters = 0


class SingleFlight:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[str, _Call] = {}

    def waiting(self, key: str) -> int:
        """Number of callers blocked on the in-flight call for key."""
        with self._lock:
            call = self._calls.get(key)
            return call.waiters if call else 0

    def do(self, key: str, fn: Callable[[], Any]) -> Tuple[Any, bool]:
        """Run fn once per key at a time. Returns (result, shared)."""
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call
            else:
                call.waiters += 1

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result, True

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()
        return call.result, False
