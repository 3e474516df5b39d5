"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds the auth slice:
the signed-in identity plus transient status, loading flag and error.

Usage::

    from budget_tracker.auth import SessionManager

    session = SessionManager()
    session.begin_authentication()
    session.set_authenticated(user)
    snapshot = session.snapshot()
"""

from __future__ import annotations

import threading
from typing import Optional

from budget_tracker.models.auth_models import AuthSession
from budget_tracker.models.enums import AuthStatus
from budget_tracker.models.user import User


class SessionManager:
    """Injectable holder for the auth slice.

    The stored user is always a credential-free copy.  ``version`` only
    moves when a persisted field (``user``, ``is_authenticated``)
    changes; status, loading and error edits leave it alone.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current_user: Optional[User] = None
        self._status: AuthStatus = AuthStatus.ANONYMOUS
        self._error: Optional[str] = None
        self._version: int = 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_authentication(self) -> None:
        """``Anonymous -> Authenticating``; clears any previous error."""
        with self._lock:
            self._status = AuthStatus.AUTHENTICATING
            self._error = None

    def set_authenticated(self, user: User) -> None:
        """Record *user* as the signed-in identity."""
        with self._lock:
            self._current_user = user.without_credentials()
            self._status = AuthStatus.AUTHENTICATED
            self._error = None
            self._version += 1

    def fail(self, message: str) -> None:
        """``Authenticating -> Anonymous`` with *message* as the error.

        An identity that was already signed in is kept.
        """
        with self._lock:
            self.settle()
            self._error = message

    def settle(self) -> None:
        """Leave ``Authenticating`` without changing identity (used by
        flows like forgot-password that never sign anyone in)."""
        with self._lock:
            self._status = (
                AuthStatus.AUTHENTICATED
                if self._current_user is not None
                else AuthStatus.ANONYMOUS
            )

    def clear_error(self) -> None:
        with self._lock:
            self._error = None

    def clear(self) -> None:
        """Remove the current user and error, ending the session."""
        with self._lock:
            self._current_user = None
            self._status = AuthStatus.ANONYMOUS
            self._error = None
            self._version += 1

    def restore(self, user: Optional[User]) -> None:
        """Rehydrate from a persisted auth slice."""
        with self._lock:
            self._current_user = user.without_credentials() if user is not None else None
            self._status = (
                AuthStatus.AUTHENTICATED if user is not None else AuthStatus.ANONYMOUS
            )
            self._error = None
            self._version += 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_current_user(self) -> Optional[User]:
        with self._lock:
            return self._current_user

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a user is currently signed in."""
        with self._lock:
            return self._current_user is not None

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def snapshot(self) -> AuthSession:
        """Return an immutable, consistent view of the auth slice."""
        with self._lock:
            return AuthSession(
                user=self._current_user,
                is_authenticated=self._current_user is not None,
                status=self._status,
                loading=self._status == AuthStatus.AUTHENTICATING,
                error=self._error,
            )
