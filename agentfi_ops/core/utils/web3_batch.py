from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from web3 import AsyncWeb3

Web3CallFactory = Callable[[], Awaitable[Any]]


async def batch_web3_calls(
    web3: AsyncWeb3,
    *call_factories: Web3CallFactory,
    fallback_to_gather: bool = True,
) -> tuple[Any, ...]:
    """
    Execute a handful of reads in one JSON-RPC batch when the node allows it.

    Usage:
        allowance, count = await batch_web3_calls(
            web3,
            lambda: token.functions.allowance(owner, spender).call(),
            lambda: factory.functions.getCreateCount(agent_id).call(),
        )

    Public Blast RPCs reject batches intermittently, so by default a failed
    batch is retried as concurrent single requests.
    """
    if not call_factories:
        return ()

    batch = None
    requests: list[Any] = []
    try:
        batch = web3.batch_requests()
        for factory in call_factories:
            requests.append(factory())
            batch.add(requests[-1])
        results = await batch.async_execute()
        return tuple(results)
    except Exception as batch_exc:  # noqa: BLE001
        # calls the failed batch never awaited
        for request in requests:
            if inspect.iscoroutine(request):
                request.close()
        if batch is not None:
            try:
                batch.cancel()
            except Exception as cancel_exc:  # noqa: BLE001
                logger.debug(f"Ignoring batch cancel failure: {cancel_exc}")

        if not fallback_to_gather:
            raise

        logger.debug(f"JSON-RPC batch failed ({batch_exc}); falling back to gather")
        try:
            results = await asyncio.gather(*(factory() for factory in call_factories))
            return tuple(results)
        except Exception as gather_exc:
            raise gather_exc from batch_exc
