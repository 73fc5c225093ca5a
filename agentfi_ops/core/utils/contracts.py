"""Contract deployment and explorer verification.

Deploys go through ``send_transaction`` so gas, nonce, fee fields, broadcast
and confirmation waits behave exactly like every other write in the package.
Artifacts are the JSON files Hardhat writes under ``artifacts/`` (Foundry's
``out/`` layout is accepted too).
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
from hexbytes import HexBytes
from loguru import logger
from pydantic import BaseModel, Field
from web3 import AsyncWeb3, Web3

from agentfi_ops.core.config import get_etherscan_api_key
from agentfi_ops.core.constants import BYTES32_ZERO
from agentfi_ops.core.constants.agentfi_abi import CONTRACT_FACTORY_ABI
from agentfi_ops.core.constants.base import DEFAULT_HTTP_TIMEOUT
from agentfi_ops.core.constants.chains import ETHERSCAN_V2_API_URL
from agentfi_ops.core.utils.etherscan import get_explorer_transaction_link
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.retry import exponential_backoff_s
from agentfi_ops.core.utils.transaction import encode_calldata, send_transaction
from agentfi_ops.core.utils.web3 import web3_from_chain_id

_OFFLINE_WEB3 = Web3()


class ContractNotDeployedError(RuntimeError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"no contract code at {address}")


class Artifact(BaseModel):
    contract_name: str = ""
    source_name: str = ""
    abi: list[dict[str, Any]] = Field(default_factory=list)
    bytecode: str = "0x"
    path: Path | None = None


def _normalize_bytecode(raw: Any) -> str:
    if isinstance(raw, dict):
        raw = raw.get("object") or ""
    text = str(raw or "")
    if text and not text.startswith("0x"):
        text = "0x" + text
    return text or "0x"


def load_artifact(path: str | Path) -> Artifact:
    path = Path(path)
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path} is not a contract artifact")
    return Artifact(
        contract_name=data.get("contractName") or path.stem,
        source_name=data.get("sourceName") or "",
        abi=data.get("abi") or [],
        bytecode=_normalize_bytecode(data.get("bytecode")),
        path=path,
    )


def load_build_info(artifact: Artifact) -> dict[str, Any] | None:
    """Hardhat build-info for ``artifact`` (standard JSON input + solc version)."""
    if artifact.path is None:
        return None
    dbg_path = artifact.path.with_name(f"{artifact.path.stem}.dbg.json")
    if not dbg_path.exists():
        return None
    build_info_ref = json.loads(dbg_path.read_text()).get("buildInfo")
    if not build_info_ref:
        return None
    build_info_path = (dbg_path.parent / build_info_ref).resolve()
    if not build_info_path.exists():
        return None
    return json.loads(build_info_path.read_text())


async def is_deployed(web3: AsyncWeb3, address: str) -> bool:
    code = await web3.eth.get_code(web3.to_checksum_address(address))
    return len(code) > 0


async def expect_deployed(web3: AsyncWeb3, address: str) -> None:
    if not await is_deployed(web3, address):
        raise ContractNotDeployedError(address)


def encode_constructor_data(
    abi: list[dict[str, Any]], bytecode: str, constructor_args: list[Any] | None
) -> str:
    contract = _OFFLINE_WEB3.eth.contract(abi=abi, bytecode=bytecode)
    data = contract.constructor(*(constructor_args or [])).data_in_transaction
    return data if data.startswith("0x") else f"0x{data}"


def build_deploy_transaction(
    *,
    abi: list[dict[str, Any]],
    bytecode: str,
    constructor_args: list[Any] | None = None,
    from_address: str,
    chain_id: int,
) -> dict[str, Any]:
    """Unsigned contract-creation transaction; gas and fees are left to the sender."""
    if not bytecode or bytecode == "0x":
        raise ValueError("bytecode is empty")
    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "data": encode_constructor_data(abi, bytecode, constructor_args),
        "value": 0,
    }


async def _verify_after_deploy(
    result: dict[str, Any],
    artifact: Artifact,
    *,
    chain_id: int,
    constructor_data: str,
    etherscan_api_key: str | None,
) -> None:
    try:
        build_info = load_build_info(artifact)
        if build_info is None:
            raise ValueError(f"no build-info found for {artifact.contract_name}")
        encoded_args = constructor_data[len(artifact.bytecode) :]
        result["verified"] = await verify_on_etherscan(
            chain_id=chain_id,
            contract_address=result["contract_address"],
            standard_json_input=build_info["input"],
            contract_name=f"{artifact.source_name}:{artifact.contract_name}",
            constructor_args_encoded=encoded_args or None,
            compiler_version=f"v{build_info['solcLongVersion']}",
            etherscan_api_key=etherscan_api_key,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"Explorer verification failed (non-fatal): {exc}")
        result["verified"] = False
        result["verification_error"] = str(exc)


async def deploy_contract(
    *,
    artifact: Artifact,
    constructor_args: list[Any] | None = None,
    from_address: str,
    chain_id: int,
    sign_callback: Callable[..., Any],
    expected_address: str | None = None,
    verify: bool = False,
    etherscan_api_key: str | None = None,
) -> dict[str, Any]:
    """Plain CREATE deploy of ``artifact``.

    Returns ``{"tx_hash", "contract_address", "contract_name"}`` plus
    ``explorer_url`` and verification fields when available.
    """
    tx = build_deploy_transaction(
        abi=artifact.abi,
        bytecode=artifact.bytecode,
        constructor_args=constructor_args,
        from_address=from_address,
        chain_id=chain_id,
    )
    logger.info(f"Deploying {artifact.contract_name} on chain {chain_id}")
    tx_hash = await send_transaction(tx, sign_callback, wait_for_receipt=True)

    async with web3_from_chain_id(chain_id) as w3:
        receipt = await w3.eth.get_transaction_receipt(tx_hash)

    deployed = receipt.get("contractAddress")
    if not deployed:
        raise RuntimeError(
            f"Deploy tx {tx_hash} succeeded but no contractAddress in receipt"
        )
    deployed = AsyncWeb3.to_checksum_address(deployed)
    if expected_address and deployed.lower() != expected_address.lower():
        raise RuntimeError(
            f"{artifact.contract_name} deployed to {deployed}, "
            f"expected {expected_address}"
        )
    logger.info(f"Deployed {artifact.contract_name} to {deployed}")

    result: dict[str, Any] = {
        "tx_hash": tx_hash,
        "contract_address": deployed,
        "contract_name": artifact.contract_name,
    }
    explorer_link = get_explorer_transaction_link(chain_id, tx_hash)
    if explorer_link:
        result["explorer_url"] = explorer_link

    if verify:
        await _verify_after_deploy(
            result,
            artifact,
            chain_id=chain_id,
            constructor_data=tx["data"],
            etherscan_api_key=etherscan_api_key,
        )
    return result


def _deployed_address_from_receipt(receipt: Any, tx_hash: str) -> str:
    logs = receipt.get("logs") or []
    if not logs:
        raise RuntimeError(f"no events in factory deploy {tx_hash}")
    last = logs[-1]
    topics = list(last.get("topics") or [])
    if len(topics) >= 2:
        word = bytes(HexBytes(topics[1]))
    else:
        data = bytes(HexBytes(last.get("data") or b""))
        if len(data) < 32:
            raise RuntimeError(f"no args in factory deploy event {tx_hash}")
        word = data[:32]
    return AsyncWeb3.to_checksum_address(word[12:32])


async def deploy_contract_using_factory(
    *,
    artifact: Artifact,
    constructor_args: list[Any] | None = None,
    from_address: str,
    chain_id: int,
    sign_callback: Callable[..., Any],
    salt: str = BYTES32_ZERO,
    calldata: str | None = None,
    factory_address: str | None = None,
    expected_address: str | None = None,
) -> dict[str, Any]:
    """CREATE2 deploy through ``ContractFactory``, then run ``calldata`` on it."""
    factory = factory_address or contract_address(chain_id, "contract_factory")
    bytecode = encode_constructor_data(
        artifact.abi, artifact.bytecode, constructor_args
    )

    async with web3_from_chain_id(chain_id) as w3:
        await expect_deployed(w3, factory)

    if calldata is None:
        data = encode_calldata(CONTRACT_FACTORY_ABI, "deploy", [bytecode, salt])
    else:
        data = encode_calldata(
            CONTRACT_FACTORY_ABI, "deployAndCall", [bytecode, salt, calldata]
        )
    tx = {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "to": AsyncWeb3.to_checksum_address(factory),
        "data": data,
        "value": 0,
    }
    logger.info(f"Deploying {artifact.contract_name} via factory {factory}")
    tx_hash = await send_transaction(tx, sign_callback, wait_for_receipt=True)

    async with web3_from_chain_id(chain_id) as w3:
        receipt = await w3.eth.get_transaction_receipt(tx_hash)
        deployed = _deployed_address_from_receipt(receipt, tx_hash)
        await expect_deployed(w3, deployed)

    if expected_address and deployed.lower() != expected_address.lower():
        raise RuntimeError(
            f"{artifact.contract_name} deployed to {deployed}, "
            f"expected {expected_address}"
        )
    logger.info(f"Deployed {artifact.contract_name} to {deployed}")
    return {
        "tx_hash": tx_hash,
        "contract_address": deployed,
        "contract_name": artifact.contract_name,
    }


async def verify_on_etherscan(
    *,
    chain_id: int,
    contract_address: str,
    standard_json_input: dict[str, Any],
    contract_name: str,
    compiler_version: str,
    constructor_args_encoded: str | None = None,
    etherscan_api_key: str | None = None,
) -> bool:
    """Verify a contract through the Etherscan V2 API (Blastscan included).

    ``contract_name`` is fully qualified (``contracts/Foo.sol:Foo``). Submission
    is retried while the explorer has not indexed the bytecode yet, then the
    returned GUID is polled until the check settles.
    """
    api_key = etherscan_api_key or get_etherscan_api_key()
    if not api_key:
        raise ValueError(
            "Etherscan API key required for verification. "
            "Set system.etherscan_api_key in config.json or ETHERSCAN_API_KEY env var."
        )

    payload = {
        "apikey": api_key,
        "module": "contract",
        "action": "verifysourcecode",
        "sourceCode": json.dumps(standard_json_input),
        "codeformat": "solidity-standard-json-input",
        "contractaddress": contract_address,
        "contractname": contract_name,
        "compilerversion": compiler_version,
    }
    if constructor_args_encoded:
        # the misspelling is the API's field name
        payload["constructorArguements"] = constructor_args_encoded.removeprefix("0x")

    guid: str | None = None
    submit_attempts = 10
    check_attempts = 10
    max_delay_s = 30.0

    async with httpx.AsyncClient(timeout=DEFAULT_HTTP_TIMEOUT) as client:
        for attempt in range(submit_attempts):
            resp = await client.post(
                ETHERSCAN_V2_API_URL,
                params={"chainid": str(chain_id)},
                data=payload,
            )
            resp.raise_for_status()
            data = resp.json()

            if data.get("status") == "1":
                guid = str(data.get("result") or "").strip() or None
                if not guid:
                    raise RuntimeError("Explorer verification returned empty GUID")
                logger.info(f"Explorer verification submitted, GUID: {guid}")
                break

            msg = str(data.get("result") or data.get("message") or "Unknown error")
            msg_l = msg.lower()
            if "already verified" in msg_l:
                logger.info(f"Contract already verified: {contract_address}")
                return True
            if "unable to locate contract" in msg_l:
                delay = exponential_backoff_s(
                    attempt, base_delay_s=1, max_delay_s=max_delay_s
                )
                logger.debug(
                    f"Explorer hasn't indexed {contract_address} yet; retrying in "
                    f"{delay}s (attempt {attempt + 1}/{submit_attempts})"
                )
                await asyncio.sleep(delay)
                continue

            raise RuntimeError(f"Explorer verification submission failed: {msg}")

        if not guid:
            raise RuntimeError(
                "Explorer verification submission failed: contract code never indexed"
            )

        check_params = {
            "chainid": str(chain_id),
            "apikey": api_key,
            "module": "contract",
            "action": "checkverifystatus",
            "guid": guid,
        }
        for attempt in range(check_attempts):
            await asyncio.sleep(
                exponential_backoff_s(attempt, base_delay_s=1, max_delay_s=max_delay_s)
            )
            resp = await client.get(ETHERSCAN_V2_API_URL, params=check_params)
            resp.raise_for_status()
            data = resp.json()
            result_msg = str(data.get("result", "")).lower()

            if data.get("status") == "1" or "already verified" in result_msg:
                logger.info(f"Contract verified: {contract_address}")
                return True
            if "pending" in result_msg:
                logger.debug(f"Verification pending (attempt {attempt + 1})")
                continue
            raise RuntimeError(f"Explorer verification failed: {data.get('result')}")

    raise RuntimeError(f"Explorer verification timed out after {check_attempts} checks")
