"""
Listener registry shared by the bridge and everything it notifies.

A listener is either a device handler (reports its own hwid) or the
discovery listener (reports no hwid). The bridge keeps them in
registration order and fans every event out to all of them.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Protocol, Sequence, Set

from .models import OilFoxDevice

_LOGGER = logging.getLogger(__name__)


class OilFoxStatusListener(Protocol):
    """Capability interface of everything registered with a bridge."""

    @property
    def hwid(self) -> Optional[str]:
        """Hardware id of the device this listener stands for, if any."""

    def on_added(self, bridge_id: str, hwid: str) -> None:
        """A device unknown to every listener showed up in a poll."""

    def on_removed(self, bridge_id: str, hwid: str) -> None:
        """A device was removed from the bridge."""

    def on_refresh(self, devices: Sequence[OilFoxDevice]) -> None:
        """A poll finished; ``devices`` is the whole device list."""


class ListenerRegistry:
    """Ordered set of listeners, compared by identity.

    Dispatch iterates over a snapshot, so listeners may (un)register
    themselves or others from inside a callback. A listener that raises
    is logged and skipped; the remaining listeners are still notified.
    """

    def __init__(self) -> None:
        self._listeners: List[OilFoxStatusListener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[OilFoxStatusListener]:
        return iter(list(self._listeners))

    def __contains__(self, listener: object) -> bool:
        return any(existing is listener for existing in self._listeners)

    def register(self, listener: OilFoxStatusListener) -> bool:
        """Add a listener; returns False if it was already registered."""
        if listener in self:
            return False
        self._listeners.append(listener)
        return True

    def unregister(self, listener: OilFoxStatusListener) -> bool:
        """Remove a listener; returns False if it was not registered."""
        for index, existing in enumerate(self._listeners):
            if existing is listener:
                del self._listeners[index]
                return True
        return False

    def known_hwids(self) -> Set[str]:
        """Hwids reported by the registered listeners right now."""
        known: Set[str] = set()
        for listener in self:
            hwid = listener.hwid
            if hwid:
                known.add(hwid)
        return known

    def dispatch_added(self, bridge_id: str, hwid: str) -> None:
        for listener in self:
            try:
                listener.on_added(bridge_id, hwid)
            except Exception:
                _LOGGER.exception(
                    "OilFox: listener %r failed while handling added device %s",
                    listener,
                    hwid,
                )

    def dispatch_removed(self, bridge_id: str, hwid: str) -> None:
        for listener in self:
            try:
                listener.on_removed(bridge_id, hwid)
            except Exception:
                _LOGGER.exception(
                    "OilFox: listener %r failed while handling removed device %s",
                    listener,
                    hwid,
                )

    def dispatch_refresh(self, devices: Sequence[OilFoxDevice]) -> None:
        for listener in self:
            try:
                listener.on_refresh(devices)
            except Exception:
                _LOGGER.exception(
                    "OilFox: listener %r failed while handling refresh", listener
                )
