"""Rate limiting utilities for API calls."""

from __future__ import annotations

import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])


class RateLimiter:
    """Spaces calls to an API at least 1/rate seconds apart.

    Shared by every worker thread talking to the same API.
    """

    def __init__(self, api_type: str, per_second: float) -> None:
        if per_second <= 0:
            raise ValueError(f"rate limit for {api_type} must be positive, got {per_second}")
        self.api_type = api_type
        self.min_interval = 1.0 / per_second
        self._last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_call_time
            if elapsed < self.min_interval:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
                time.sleep(self.min_interval - elapsed)
            self._last_call_time = time.monotonic()

    def __call__(self, func: _F) -> _F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.wait()
            return func(*args, **kwargs)

        return wrapper  # type: ignore
