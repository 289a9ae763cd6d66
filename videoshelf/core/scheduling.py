# Copyright (c) 2025 Trae AI. All rights reserved.

import threading
from typing import Callable, Optional


class DebouncedTask:
    """
    Runs ``callback`` once, ``delay`` seconds after the first ``schedule()``.
    Further calls inside that window are coalesced into the same run.
    ``flush()`` runs a pending callback right away; ``cancel()`` drops it.
    """

    def __init__(self, callback: Callable[[], None], delay: float):
        self.callback = callback
        self.delay = delay
        self.timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self.timer is not None

    def schedule(self):
        with self._lock:
            if self.timer:
                return
            self.timer = threading.Timer(self.delay, self._fire)
            self.timer.daemon = True
            self.timer.start()

    def cancel(self) -> bool:
        with self._lock:
            timer, self.timer = self.timer, None
        if timer:
            timer.cancel()
        return timer is not None

    def flush(self) -> bool:
        if not self.cancel():
            return False
        self.callback()
        return True

    def _fire(self):
        with self._lock:
            # A cancelled timer may still wake up; only the current one runs.
            if self.timer is not threading.current_thread():
                return
            self.timer = None
        self.callback()
