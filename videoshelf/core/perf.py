# Copyright (c) 2025 Trae AI. All rights reserved.

import logging
import time

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """
    Context manager that logs how long a block took, only when enabled.
    """

    def __init__(self, label: str, enabled: bool = False):
        self.label = label
        self.enabled = enabled
        self.start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed_ms = (time.perf_counter() - self.start) * 1000
        if self.enabled:
            logger.debug(f"[PERF] {self.label}: {self.elapsed_ms:.2f}ms")
        return False
