"""
Single-owner invariant helpers.

A CodeManager and its FeatureHistory are not thread-safe. Every public entry
point checks that it runs on the thread that created the manager, so a host
that forgot to serialize calls through one dispatch queue fails loudly.
"""

from __future__ import annotations

import threading

from config.feature_flags import is_enabled


class OwnerThreadGuard:
    """Remembers the creating thread and rejects calls from any other."""

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._owner_name = threading.current_thread().name

    @property
    def owner_name(self) -> str:
        return self._owner_name

    def is_owner_thread(self) -> bool:
        """Return True when the current thread created the guarded object."""
        return threading.get_ident() == self._owner

    def ensure_owner_thread(self, operation: str) -> None:
        """Raise when the guarded object is used from a foreign thread."""
        if not is_enabled("owner_thread_check") or self.is_owner_thread():
            return

        current = threading.current_thread().name or "unknown"
        raise RuntimeError(
            f"{operation} must run on thread '{self._owner_name}' because a CodeManager "
            f"is single-owner (current thread: {current})"
        )
