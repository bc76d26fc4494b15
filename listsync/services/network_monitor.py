"""
Network monitor: wraps a connectivity probe into a current-state query and a
subscribable stream of online/offline transitions.

The probe is any callable returning ``bool``; the default one opens a TCP
connection to the configured probe host. A probe that raises counts as
offline. Transitions are published once per actual state change.
"""

import socket
import threading
from typing import Callable, List, Optional

from listsync.config.settings import settings
from listsync.utils.log import app_logger

Listener = Callable[[bool], None]


def tcp_probe(host: Optional[str] = None, port: Optional[int] = None,
              timeout: Optional[float] = None) -> Callable[[], bool]:
    """Build a probe that reports whether `host:port` accepts a TCP connection."""
    host = host or settings.PROBE_HOST
    port = port or settings.PROBE_PORT
    timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT

    def probe() -> bool:
        with socket.create_connection((host, port), timeout=timeout):
            return True

    return probe


class NetworkMonitor:

    def __init__(self, probe: Optional[Callable[[], bool]] = None, initial: Optional[bool] = None):
        self._probe = probe or tcp_probe()
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        # last published state; None until the first observation
        self._state: Optional[bool] = initial

    @property
    def last_known(self) -> Optional[bool]:
        return self._state

    def current(self) -> bool:
        """Best-effort reachability check. Never raises."""
        try:
            online = bool(self._probe())
        except Exception as e:
            app_logger.debug("network.probe_failed", exc_type=type(e).__name__, error=str(e))
            online = False
        self._publish(online)
        return online

    def poll(self) -> bool:
        """Probe once and notify subscribers if the state changed."""
        return self.current()

    def set_online(self, online: bool) -> None:
        """Feed an observation pushed by the platform."""
        self._publish(bool(online))

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(fn)

        def unsubscribe() -> None:
            with self._lock:
                if fn in self._listeners:
                    self._listeners.remove(fn)

        return unsubscribe

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()

    def _publish(self, online: bool) -> None:
        with self._lock:
            if self._state is online:
                return
            previous = self._state
            self._state = online
            listeners = list(self._listeners)

        if previous is None:
            # first observation sets the baseline, it is not a transition
            app_logger.debug("network.baseline", online=online)
            return

        app_logger.info("network.transition", online=online, previous=previous)
        for fn in listeners:
            # skip listeners removed while we were dispatching
            with self._lock:
                if fn not in self._listeners:
                    continue
            try:
                fn(online)
            except Exception as e:
                app_logger.error("network.listener_failed", error=str(e), exc_info=e)
