"""Per-request authentication state.

A SessionContext is created for each request, initialized from the logged
in user, subscribed to Flask-Login's sign-in/sign-out signals for the rest
of the request and torn down at the end. Views read the role from it
instead of reaching into ``current_user`` directly.

The request hook in ``create_app`` resolves the context from
``current_user`` in the same call that opens it, so a web request never
observes the loading state. The deadline only matters for a context that is
initialized and resolved separately: if ``resolve`` has not been called by
then, ``status`` reports unauthenticated and an error is logged. A late
``resolve`` still applies.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from flask import g, has_request_context
from flask_login import user_logged_in, user_logged_out

logger = logging.getLogger(__name__)

LOADING = 'loading'
AUTHENTICATED = 'authenticated'
UNAUTHENTICATED = 'unauthenticated'

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    full_name: Optional[str]
    role: str

    @classmethod
    def from_user(cls, user) -> Optional['AuthUser']:
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        return cls(str(user.get_id()), user.email, user.full_name, user.role)


def can_write(role: Optional[str]) -> bool:
    """Only admins may create, update or delete projects and their records."""
    return role == 'admin'


class SessionContext:

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self._clock = clock
        self._status = UNAUTHENTICATED
        self._deadline: Optional[float] = None
        self._user: Optional[AuthUser] = None
        self._listeners: List[Callable[['SessionContext'], None]] = []
        self._app = None

    # --- lifecycle ---

    def initialize(self) -> 'SessionContext':
        self._status = LOADING
        self._user = None
        self._deadline = self._clock() + self.timeout
        return self

    def subscribe(self, app) -> 'SessionContext':
        self._app = app
        user_logged_in.connect(self._on_logged_in, sender=app)
        user_logged_out.connect(self._on_logged_out, sender=app)
        return self

    def teardown(self) -> None:
        if self._app is not None:
            user_logged_in.disconnect(self._on_logged_in, sender=self._app)
            user_logged_out.disconnect(self._on_logged_out, sender=self._app)
            self._app = None
        self._listeners.clear()
        self._deadline = None

    # --- state ---

    def resolve(self, user) -> None:
        """Finish loading with ``user`` (an AuthUser, a login user or None)."""
        if user is not None and not isinstance(user, AuthUser):
            user = AuthUser.from_user(user)
        self._user = user
        self._deadline = None
        self._set_status(AUTHENTICATED if user else UNAUTHENTICATED)

    def fail(self, exc: BaseException) -> None:
        logger.error('Error loading user: %s', exc)
        self.resolve(None)

    def on_change(self, callback: Callable[['SessionContext'], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    @property
    def status(self) -> str:
        if self._status == LOADING and self._deadline is not None and self._clock() >= self._deadline:
            logger.error('Auth loading timeout - falling back to unauthenticated')
            self._deadline = None
            self._set_status(UNAUTHENTICATED)
        return self._status

    @property
    def loading(self) -> bool:
        return self.status == LOADING

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user if self.status == AUTHENTICATED else None

    @property
    def role(self) -> Optional[str]:
        user = self.user
        return user.role if user else None

    @property
    def can_write(self) -> bool:
        return can_write(self.role)

    def _set_status(self, status: str) -> None:
        self._status = status
        for callback in list(self._listeners):
            callback(self)

    def _owns_request(self) -> bool:
        # signals fire on the shared app; only the emitting request may react
        return has_request_context() and g.get('auth') is self

    def _on_logged_in(self, sender, user=None, **extra):
        if self._owns_request():
            self.resolve(user)

    def _on_logged_out(self, sender, user=None, **extra):
        if self._owns_request():
            self.resolve(None)
