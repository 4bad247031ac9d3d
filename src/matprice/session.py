from __future__ import annotations

import logging
from typing import Callable

from .context import AppContext
from .errors import AUTH_FAILED_MESSAGE, AuthError, ErrorSlot
from .providers.base import AuthProvider, Identity, Unsubscribe

logger = logging.getLogger(__name__)


class SessionBootstrapper:
    """Signs the session in and tracks the current identity.

    Uses the configured initial auth token when there is one, anonymous
    sign-in otherwise. A failed sign-in is reported once through the error
    slot and leaves the identity unset; there is no automatic retry.
    """

    def __init__(self, ctx: AppContext, errors: ErrorSlot, auth: AuthProvider | None = None) -> None:
        self._ctx = ctx
        self._errors = errors
        self._auth = auth or ctx.new_auth()
        self._identity: Identity | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._listeners: list[Callable[[Identity | None], None]] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    def subscribe(self, on_change: Callable[[Identity | None], None]) -> Unsubscribe:
        self._listeners.append(on_change)
        on_change(self._identity)

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def _on_auth_change(self, identity: Identity | None) -> None:
        self._identity = identity
        logger.info("auth state changed uid=%s", identity.uid if identity else None)
        for listener in list(self._listeners):
            listener(identity)

    def start(self) -> Identity | None:
        if self._unsubscribe is None:
            self._unsubscribe = self._auth.subscribe(self._on_auth_change)

        token = self._ctx.settings.initial_auth_token
        try:
            if token:
                self._auth.sign_in_with_token(token)
            else:
                self._auth.sign_in_anonymously()
        except AuthError:
            logger.exception("sign-in failed (token=%s)", "yes" if token else "no")
            self._errors.set(AUTH_FAILED_MESSAGE)
        return self._identity

    def sign_out(self) -> None:
        self._auth.sign_out()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
