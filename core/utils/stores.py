from __future__ import annotations

from typing import Iterable, Optional


def normalize_store_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def find_store_by_code(stores: Iterable, code: Optional[str]):
    normalized = normalize_store_code(code)
    if not normalized:
        return None, normalized
    for store in stores:
        if normalize_store_code(store.code) == normalized:
            return store, normalized
    return None, normalized


def resolve_active_store(user, requested_code: Optional[str] = None):
    """
    Return ``(store, available_stores)`` for ``user``.

    The requested code wins when the user can access it; otherwise the first
    available store is used.
    """
    from core.models import Store

    available = list(Store.available_for(user).order_by("code"))
    store, _ = find_store_by_code(available, requested_code)
    if not store and available:
        store = available[0]
    return store, available
