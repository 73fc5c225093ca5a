from contextlib import asynccontextmanager

from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3

from agentfi_ops.core.config import get_rpc_urls
from agentfi_ops.core.utils.retry import is_retryable_http_error, retry_async

_RPC_MAX_RETRIES = 4
_RPC_BASE_DELAY_S = 0.5
_RPC_MAX_DELAY_S = 8.0


class RetryingHTTPProvider(AsyncHTTPProvider):
    """HTTP provider that retries throttled or flaky upstream responses.

    Public Blast RPCs return 429 under load and the occasional 502/503/504 from
    their load balancers. Those are retried with exponential backoff; every other
    failure (including JSON-RPC execution errors) surfaces immediately.
    """

    max_retries = _RPC_MAX_RETRIES

    async def make_request(self, method, params):  # type: ignore[override]
        async def _request():
            return await super(RetryingHTTPProvider, self).make_request(method, params)

        def _on_retry(attempt: int, exc: Exception, delay_s: float) -> None:
            logger.debug(
                f"RPC {method} to {self.endpoint_uri} failed ({exc}); "
                f"retry {attempt + 1} in {delay_s:.2f}s"
            )

        return await retry_async(
            _request,
            max_retries=self.max_retries,
            base_delay_s=_RPC_BASE_DELAY_S,
            max_delay_s=_RPC_MAX_DELAY_S,
            should_retry=is_retryable_http_error,
            on_retry=_on_retry,
        )


def _get_rpcs_for_chain_id(chain_id: int) -> list:
    mapping = get_rpc_urls()
    rpcs = mapping.get(str(chain_id))
    if rpcs is None:
        raise ValueError(f"No RPCs configured for chain ID {chain_id}")
    if isinstance(rpcs, str):
        return [rpcs]
    return rpcs


def _get_web3(rpc: str) -> AsyncWeb3:
    provider = RetryingHTTPProvider(
        rpc, request_kwargs={"headers": AsyncHTTPProvider.get_request_headers()}
    )
    return AsyncWeb3(provider)


def get_transaction_chain_id(transaction: dict) -> int:
    if "chainId" not in transaction:
        raise ValueError("Transaction does not contain chainId")
    return int(transaction["chainId"])


def get_web3s_from_chain_id(chain_id: int) -> list[AsyncWeb3]:
    return [_get_web3(rpc) for rpc in _get_rpcs_for_chain_id(chain_id)]


@asynccontextmanager
async def web3s_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()


@asynccontextmanager
async def web3_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s[0]
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()
