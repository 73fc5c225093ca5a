"""ERC-6551 token bound account addresses.

The registry deploys each account as an ERC-1167 minimal proxy whose runtime
code carries ``(salt, chainId, tokenContract, tokenId)`` as a footer, so the
address is a pure CREATE2 function of those values.
"""

from __future__ import annotations

from eth_abi import encode
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes
from web3 import AsyncWeb3

from agentfi_ops.core.constants.agentfi_abi import ERC6551_REGISTRY_ABI
from agentfi_ops.core.constants.contracts import ERC6551_REGISTRY_ADDRESS
from agentfi_ops.core.utils.collections import to_bytes32

_CREATION_PREFIX = bytes.fromhex("3d60ad80600a3d3981f3")
_PROXY_PREFIX = bytes.fromhex("363d3d373d3d3d363d73")
_PROXY_SUFFIX = bytes.fromhex("5af43d82803e903d91602b57fd5bf3")


def _salt_bytes(salt: int | str | bytes) -> bytes:
    return bytes(HexBytes(to_bytes32(salt)))


def tba_init_code(
    implementation: str,
    salt: int | str | bytes,
    chain_id: int,
    token_contract: str,
    token_id: int,
) -> bytes:
    footer = encode(
        ["bytes32", "uint256", "address", "uint256"],
        [
            _salt_bytes(salt),
            int(chain_id),
            to_checksum_address(token_contract),
            int(token_id),
        ],
    )
    return (
        _CREATION_PREFIX
        + _PROXY_PREFIX
        + bytes(HexBytes(implementation))
        + _PROXY_SUFFIX
        + footer
    )


def compute_tba_address(
    implementation: str,
    salt: int | str | bytes,
    chain_id: int,
    token_contract: str,
    token_id: int,
    registry: str = ERC6551_REGISTRY_ADDRESS,
) -> str:
    init_code = tba_init_code(implementation, salt, chain_id, token_contract, token_id)
    digest = keccak(
        b"\xff" + bytes(HexBytes(registry)) + _salt_bytes(salt) + keccak(init_code)
    )
    return to_checksum_address(digest[12:])


async def fetch_tba_address(
    web3: AsyncWeb3,
    implementation: str,
    salt: int | str | bytes,
    chain_id: int,
    token_contract: str,
    token_id: int,
    registry: str = ERC6551_REGISTRY_ADDRESS,
) -> str:
    contract = web3.eth.contract(
        address=web3.to_checksum_address(registry), abi=ERC6551_REGISTRY_ABI
    )
    account = await contract.functions.account(
        web3.to_checksum_address(implementation),
        _salt_bytes(salt),
        int(chain_id),
        web3.to_checksum_address(token_contract),
        int(token_id),
    ).call()
    return to_checksum_address(account)
