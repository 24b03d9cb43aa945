"""Lazily created, thread-safe single instances."""

from __future__ import annotations

import functools
import threading
from typing import Callable, TypeVar

T = TypeVar("T")

_UNSET = object()


def singleton(factory: Callable[[], T]) -> Callable[[], T]:
    """Wrap a no-argument factory so it runs at most once.

    The returned callable hands back the same instance every time and
    offers ``cache_clear()`` to drop it.
    """
    lock = threading.Lock()
    instance: object = _UNSET

    @functools.wraps(factory)
    def get_instance() -> T:
        nonlocal instance
        if instance is _UNSET:
            with lock:
                if instance is _UNSET:
                    instance = factory()
        return instance  # type: ignore[return-value]

    def cache_clear() -> None:
        nonlocal instance
        with lock:
            instance = _UNSET

    get_instance.cache_clear = cache_clear  # type: ignore[attr-defined]
    return get_instance