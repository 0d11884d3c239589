# pos/services/cart_cache.py

"""
CART CACHE (CONVENIENCE ONLY)

Purpose:
- Keep a session's in-progress cart recoverable between requests / restarts.
- Backed by Django's cache framework (LocMem by default, CACHE_URL to change).
- Hold a short-lived per-session checkout lock so two concurrent checkout
  requests on the same cart cannot both run.

Rules:
- Not a record of truth: losing the cache loses only an unfinished cart.
- Orders are the record of truth and live in the database.
"""

from __future__ import annotations

from django.conf import settings
from django.core.cache import caches


class SessionCartCache:
    KEY_PREFIX = "pos:cart:"
    LOCK_PREFIX = "pos:checkout-lock:"
    LOCK_TIMEOUT = 60

    def __init__(self, session_key: str, *, timeout=None, alias: str = "default"):
        if not session_key:
            raise ValueError("session_key is required")
        self.key = f"{self.KEY_PREFIX}{session_key}"
        self.lock_key = f"{self.LOCK_PREFIX}{session_key}"
        self.timeout = timeout if timeout is not None else getattr(settings, "CART_CACHE_TIMEOUT", None)
        self.backend = caches[alias]

    def load(self) -> dict | None:
        return self.backend.get(self.key)

    def save(self, state: dict) -> None:
        self.backend.set(self.key, state, self.timeout)

    def clear(self) -> None:
        self.backend.delete(self.key)

    # ------------------------------------------------------
    # Checkout lock
    # ------------------------------------------------------

    def acquire_checkout_lock(self) -> bool:
        # add() only writes when the key is absent
        return bool(self.backend.add(self.lock_key, 1, self.LOCK_TIMEOUT))

    def release_checkout_lock(self) -> None:
        self.backend.delete(self.lock_key)

    def is_checkout_locked(self) -> bool:
        return self.backend.get(self.lock_key) is not None
