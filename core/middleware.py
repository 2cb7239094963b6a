from __future__ import annotations

from typing import Any, Callable

from .utils.stores import normalize_store_code, resolve_active_store


class ActiveStoreMiddleware:
    """
    Attach the active store to each request using the ``X-Store`` header or the session.
    """

    session_key = "active_store_code"
    header_name = "X-Store"

    def __init__(self, get_response: Callable[[Any], Any]) -> None:
        self.get_response = get_response

    def __call__(self, request):
        request.available_stores = []
        request.store = None
        request.requested_store_code = normalize_store_code(
            request.headers.get(self.header_name) or request.session.get(self.session_key)
        )

        if request.user.is_authenticated:
            store, available = resolve_active_store(request.user, request.requested_store_code)
            request.available_stores = available
            request.store = store
            if store and request.session.get(self.session_key) != store.code:
                request.session[self.session_key] = store.code

        response = self.get_response(request)
        return response
