"""Session state shared by every SmartRoom request.

The store holds the bearer token used by the request pipeline and a set of
explicitly subscribed expiry listeners. Listeners are notified at most once
per expiry episode: an episode starts when a credential is set and ends with
the first authorization failure observed for that credential.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)


class SessionStore:
    """Hold the current credential and dispatch expiry notifications."""

    def __init__(self, credential: str | None = None) -> None:
        """Initialize the store.

        Args:
            credential: Optional token to start the session with.

        """
        self._credential = credential
        self._expired = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def is_expired(self) -> bool:
        """Return True once the current credential has been rejected."""
        return self._expired

    def get_credential(self) -> str | None:
        """Return the current credential, or None when signed out."""
        return self._credential

    def set_credential(self, credential: str) -> None:
        """Install a new credential and start a new expiry episode."""
        self._credential = credential
        self._expired = False
        _LOGGER.debug("Session credential updated")

    def clear(self) -> None:
        """Drop the credential (logout or expiry handling)."""
        self._credential = None
        _LOGGER.debug("Session credential cleared")

    def on_expired(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to expiry notifications.

        Args:
            callback: Called with no arguments when the session expires.

        Returns:
            A function that removes the subscription.

        """
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def expire(self, credential: str | None) -> bool:
        """Mark the session expired after an authorization failure.

        Args:
            credential: The credential the failed request was sent with.

        Returns:
            True if this call started the expiry and listeners were notified,
            False if the failure belongs to an episode already handled or to
            a credential that has since been replaced.

        """
        if self._expired or credential != self._credential:
            _LOGGER.debug("Ignoring authorization failure for a stale session")
            return False

        self._expired = True
        _LOGGER.warning("Session expired, notifying %d listener(s)", len(self._listeners))

        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _LOGGER.exception("Error in session expiry listener")

        return True
