from __future__ import annotations

from collections.abc import Callable, Coroutine
from functools import wraps
from typing import Any, TypeVar

T = TypeVar("T")


def status_tuple(
    fn: Callable[..., Coroutine[Any, Any, T]],
) -> Callable[..., Coroutine[Any, Any, tuple[bool, T | str]]]:
    """Make an async adapter method return ``(True, result)`` or ``(False, err)``.

    Exceptions are logged through the adapter's bound ``self.logger`` and never
    escape the wrapper.
    """

    @wraps(fn)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> tuple[bool, T | str]:
        try:
            return (True, await fn(self, *args, **kwargs))
        except Exception as exc:  # noqa: BLE001
            self.logger.error(f"{self.__class__.__name__}.{fn.__name__} failed: {exc}")
            return (False, str(exc))

    return wrapper  # type: ignore[return-value]
