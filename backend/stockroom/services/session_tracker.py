# Overview: Follows identity-provider state and keeps the inventory workspace in step with it.

"""
Session Tracker

Subscribes to an IdentityProvider for its whole lifetime and relays every
principal change to its own subscribers. When a workspace is attached it is
driven from here:

- principal -> None: the workspace is reset (caches emptied) before any
  subscriber hears about the change, so nothing stale is ever rendered
- principal -> someone else: reset first, then fetch for the new principal
- same principal again: nothing to do

``close()`` is the terminal state; it releases the provider listener.
"""
from __future__ import annotations

from typing import Callable, Optional

from .identity_service import IdentityProvider, Principal
from .inventory_service import InventoryWorkspace


PrincipalListener = Callable[[Optional[Principal]], None]


class Subscription:
    """Handle returned by ``SessionTracker.subscribe``."""

    def __init__(self, tracker: "SessionTracker", listener: PrincipalListener):
        self._tracker = tracker
        self._listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._tracker._remove(self._listener)


class SessionTracker:
    def __init__(self, identity: IdentityProvider, workspace: InventoryWorkspace | None = None):
        self.identity = identity
        self.workspace = workspace
        self.principal: Principal | None = None
        self.closed = False
        self._listeners: list[PrincipalListener] = []
        # The provider calls back immediately with its current state
        self._release = identity.on_auth_state_change(self._on_auth_state)

    def _on_auth_state(self, principal: Principal | None) -> None:
        if self.closed:
            return
        previous = self.principal
        self.principal = principal

        if self.workspace is not None:
            if principal is None:
                self.workspace.reset()
            elif previous is None or previous.uid != principal.uid:
                self.workspace.reset()
                self.workspace.activate(principal)

        for listener in list(self._listeners):
            listener(principal)

    def subscribe(self, listener: PrincipalListener) -> Subscription:
        """Deliver the current principal now and on every later change."""
        if self.closed:
            raise RuntimeError("SessionTracker is closed")
        self._listeners.append(listener)
        listener(self.principal)
        return Subscription(self, listener)

    def _remove(self, listener: PrincipalListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release()
        self._listeners.clear()
