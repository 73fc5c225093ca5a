from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from agentfi_ops.core.config import get_fork_network, get_rpc_urls
from agentfi_ops.core.constants.chains import (
    CHAIN_CODE_TO_ID,
    CHAIN_CONFIRMATIONS,
    CHAIN_EXPLORER_URLS,
    CHAIN_ID_HARDHAT,
    CHAIN_ID_TO_CODE,
    CHAIN_TX_OVERRIDES,
    TESTNET_CHAIN_IDS,
)
from agentfi_ops.core.constants.contracts import get_contract_address


class ChainMismatchError(RuntimeError):
    def __init__(self, actual_chain_id: int, expected_chain_id: int):
        self.actual_chain_id = actual_chain_id
        self.expected_chain_id = expected_chain_id
        super().__init__(
            f"Expected chain {expected_chain_id}, connected to {actual_chain_id}"
        )


class NetworkSettings(BaseModel):
    chain_id: int
    confirmations: int
    overrides: dict[str, int] = Field(default_factory=dict)
    is_testnet: bool
    provider_url: str | None = None
    explorer_url: str | None = None


def _first_rpc_url(chain_id: int) -> str | None:
    # hardhat never has a provider url
    if chain_id == CHAIN_ID_HARDHAT:
        return ""
    rpcs = get_rpc_urls().get(str(chain_id))
    if isinstance(rpcs, list):
        return rpcs[0] if rpcs else None
    return rpcs


def get_network_settings(chain_id: int) -> NetworkSettings:
    chain_id = int(chain_id)
    if chain_id not in CHAIN_CONFIRMATIONS:
        raise ValueError(f"chainID '{chain_id}' unknown")
    return NetworkSettings(
        chain_id=chain_id,
        confirmations=CHAIN_CONFIRMATIONS[chain_id],
        overrides=dict(CHAIN_TX_OVERRIDES.get(chain_id, {})),
        is_testnet=chain_id in TESTNET_CHAIN_IDS,
        provider_url=_first_rpc_url(chain_id),
        explorer_url=CHAIN_EXPLORER_URLS.get(chain_id),
    )


def parse_chain(value: str | int) -> int:
    """Accept a chain id or a chain code name such as ``blastsepolia``."""
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.isdigit():
        return int(text)
    if text not in CHAIN_CODE_TO_ID:
        raise ValueError(f"chain '{value}' unknown")
    return CHAIN_CODE_TO_ID[text]


def is_chain(
    actual_chain_id: int,
    expected_chain_id: int,
    fork_network: str | None = None,
) -> bool:
    actual_chain_id = int(actual_chain_id)
    expected_chain_id = int(expected_chain_id)
    if actual_chain_id == expected_chain_id:
        return True
    if actual_chain_id != CHAIN_ID_HARDHAT:
        return False
    fork = fork_network if fork_network is not None else get_fork_network()
    if not fork:
        return False
    return CHAIN_CODE_TO_ID.get(fork.lower()) == expected_chain_id


def ensure_chain(
    actual_chain_id: int,
    expected_chain_id: int,
    fork_network: str | None = None,
) -> None:
    if not is_chain(actual_chain_id, expected_chain_id, fork_network):
        raise ChainMismatchError(int(actual_chain_id), int(expected_chain_id))


def address_book_chain_id(chain_id: int, fork_network: str | None = None) -> int:
    """Chain whose deployed addresses apply; a hardhat fork uses the forked chain's."""
    chain_id = int(chain_id)
    if chain_id != CHAIN_ID_HARDHAT:
        return chain_id
    fork = fork_network if fork_network is not None else get_fork_network()
    return CHAIN_CODE_TO_ID.get(fork or "", chain_id)


def contract_address(chain_id: int, name: str) -> str:
    return get_contract_address(address_book_chain_id(chain_id), name)


def chain_code(chain_id: int) -> str:
    return CHAIN_ID_TO_CODE.get(int(chain_id), str(chain_id))


def network_summary(chain_id: int) -> dict[str, Any]:
    settings = get_network_settings(chain_id)
    return {"network": chain_code(chain_id), **settings.model_dump()}
