"""Coalesce bursts of input into a single recomputation.

Each new value supersedes the pending one and restarts the quiet-period
timer; the callback runs once, with the latest value, after the burst ends.
Timers are scheduled on the running asyncio loop.  Without a running loop the
value simply stays pending until :meth:`Debouncer.flush` is called.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from . import config

logger = logging.getLogger(__name__)

_NOTHING = object()


class Debouncer:
    def __init__(
        self,
        callback: Callable[[Any], None],
        delay: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.callback = callback
        self.delay = config.DEBOUNCE_SECONDS if delay is None else max(0.0, delay)
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Any = _NOTHING
        self._token = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    @property
    def token(self) -> int:
        """Identifier of the most recent submission."""
        return self._token

    def _resolve_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def submit(self, value: Any) -> int:
        """Replace any pending value with ``value`` and restart the timer."""
        self._cancel_timer()
        self._token += 1
        self._pending = value
        loop = self._resolve_loop()
        if loop is not None:
            self._handle = loop.call_later(self.delay, self._fire, self._token)
        return self._token

    def _fire(self, token: int) -> None:
        if token != self._token:
            return
        self._handle = None
        self._run()

    def flush(self) -> bool:
        """Run the callback now for the pending value, if any."""
        self._cancel_timer()
        return self._run()

    def _run(self) -> bool:
        if self._pending is _NOTHING:
            return False
        value = self._pending
        self._pending = _NOTHING
        logger.debug("Flushing debounced input (token %d)", self._token)
        self.callback(value)
        return True

    def cancel(self) -> None:
        """Drop the pending value without running the callback."""
        self._cancel_timer()
        self._pending = _NOTHING

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
