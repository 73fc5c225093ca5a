from __future__ import annotations

import functools
from abc import ABC
from collections.abc import Callable
from typing import Any

from loguru import logger


def require_wallet(fn: Callable) -> Callable:
    """Return ``(False, ...)`` early when the adapter cannot sign transactions."""

    @functools.wraps(fn)
    async def wrapper(self: BaseAdapter, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "wallet_address", None):
            return False, "wallet address not configured"
        if getattr(self, "sign_callback", None) is None:
            return False, "sign callback not configured"
        return await fn(self, *args, **kwargs)

    return wrapper


class BaseAdapter(ABC):
    adapter_type: str | None = None

    def __init__(
        self,
        name: str,
        config: dict[str, Any] | None = None,
        *,
        chain_id: int | None = None,
        wallet_address: str | None = None,
        sign_callback: Callable | None = None,
    ):
        self.name = name
        self.config = config or {}
        self.chain_id = int(chain_id) if chain_id is not None else None
        self.wallet_address = wallet_address
        self.sign_callback = sign_callback
        self.logger = logger.bind(adapter=self.__class__.__name__)

    def _require_chain_id(self) -> int:
        if self.chain_id is None:
            raise ValueError(f"{self.__class__.__name__} requires chain_id")
        return self.chain_id

    async def close(self) -> None:
        pass
