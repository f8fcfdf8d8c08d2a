"""
Performance timing utilities for debugging.

This module provides a decorator for measuring execution time of the
silence scan and chunk planning when the CS_DEBUG environment variable is set.
"""

import functools
import logging
import os
import time
from typing import Callable, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def is_timing_enabled() -> bool:
    # Read per call: --debug sets CS_DEBUG after this module is imported
    return os.getenv("CS_DEBUG") == "1"


def timer(func: Callable[P, R]) -> Callable[P, R]:
    """
    Decorator that measures and logs execution time when CS_DEBUG=1.

    Args:
        func: Function to measure

    Returns:
        Wrapped function that logs timing if debug is enabled
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not is_timing_enabled():
            return func(*args, **kwargs)
        start_time = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(f"[CS_DEBUG] {func.__qualname__}: {elapsed_ms:.2f}ms")

    return wrapper
