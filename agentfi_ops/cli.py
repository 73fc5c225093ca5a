from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click
from eth_account import Account
from loguru import logger
from pydantic import BaseModel

from agentfi_ops.adapters.agent_registry_adapter import (
    AgentRegistryAdapter,
    unique_owners,
)
from agentfi_ops.adapters.gas_adapter import (
    GasAdapter,
    estimate_claim_rate,
    transfer_eth,
)
from agentfi_ops.core.config import get_account, load_config
from agentfi_ops.core.utils.etherscan import get_explorer_address_link
from agentfi_ops.core.utils.network import (
    contract_address,
    network_summary,
    parse_chain,
)
from agentfi_ops.core.utils.selectors import (
    calc_sighashes,
    function_signatures,
    get_combined_abi,
    get_selector,
)
from agentfi_ops.core.utils.tba import compute_tba_address
from agentfi_ops.core.utils.transaction import local_sign_callback
from agentfi_ops.core.utils.units import format_units, to_wei_eth

LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, (list, tuple)):
        return [_jsonable(d) for d in data]
    if isinstance(data, dict):
        return {k: _jsonable(v) for k, v in data.items()}
    return data


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(_jsonable(data), indent=2, default=str))


def _echo_status(status: tuple[bool, Any]) -> None:
    ok, result = status
    if ok:
        _echo_json({"ok": True, "result": result})
    else:
        _echo_json({"ok": False, "error": result})
        sys.exit(1)


def _chain(value: str) -> int:
    try:
        return parse_chain(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _account(name: str) -> dict[str, Any]:
    try:
        return get_account(name)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--account") from exc


def _signer(name: str) -> tuple[str, Any]:
    account = _account(name)
    address = account.get("address") or Account.from_key(account["key"]).address
    return address, local_sign_callback(account["key"])


@click.group(name="agentfi", help="Operate AgentFi contracts on Blast.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to config.json (defaults to the project root).",
)
def agentfi_cli(log_level: str, config_path: str | None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level).upper())
    if config_path is not None:
        load_config(config_path, require_exists=True)


@agentfi_cli.command(name="network", help="Show the settings used for a chain.")
@click.argument("chain")
def network_cmd(chain: str) -> None:
    chain_id = _chain(chain)
    try:
        summary = network_summary(chain_id)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="CHAIN") from exc
    _echo_json(summary)


@agentfi_cli.command(name="selectors", help="Selector table of combined ABIs.")
@click.argument("artifacts", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--remove", "remove", multiple=True, help="Signature to leave out.")
@click.option("--debug", is_flag=True, default=False)
def selectors_cmd(artifacts: tuple[str, ...], remove: tuple[str, ...], debug: bool):
    dropped = {get_selector(sig) for sig in remove}
    abi = [
        f
        for f in get_combined_abi(artifacts)
        if f.get("type") == "function" and get_selector(f) not in dropped
    ]
    selectors = calc_sighashes(abi, "combined ABI", debug=debug)
    _echo_json(
        [
            {"selector": selector, "signature": signature}
            for selector, signature in zip(selectors, function_signatures(abi))
        ]
    )


@agentfi_cli.command(name="tba-address", help="Derive an ERC-6551 account address.")
@click.option("--implementation", required=True)
@click.option("--collection", required=True)
@click.option("--token-id", type=int, required=True)
@click.option("--salt", default="0", show_default=True)
@click.option("--chain-id", type=int, required=True)
def tba_address_cmd(
    implementation: str, collection: str, token_id: int, salt: str, chain_id: int
) -> None:
    try:
        salt_value: int | str = salt if salt.startswith("0x") else int(salt)
    except ValueError as exc:
        raise click.BadParameter(
            "expected an integer or 0x-prefixed hex", param_hint="--salt"
        ) from exc
    address = compute_tba_address(
        implementation, salt_value, chain_id, collection, token_id
    )
    _echo_json({"address": address})


@agentfi_cli.command(name="list-agents", help="List the agents of a collection.")
@click.option("--chain", "chain", required=True)
@click.option(
    "--collection",
    type=click.Choice(["genesis", "strategy"]),
    default="genesis",
    show_default=True,
)
@click.option("--owner", default=None, help="Only agents held by this address.")
def list_agents_cmd(chain: str, collection: str, owner: str | None) -> None:
    adapter = AgentRegistryAdapter(chain_id=_chain(chain))
    _echo_status(asyncio.run(adapter.list_agents(collection, owner_filter=owner)))


@agentfi_cli.command(name="agent-tree", help="Genesis agents and their strategies.")
@click.option("--chain", "chain", required=True)
def agent_tree_cmd(chain: str) -> None:
    adapter = AgentRegistryAdapter(chain_id=_chain(chain))
    ok, tree = asyncio.run(adapter.get_agent_tree())
    if ok:
        tree = {"agents": tree, "owners": unique_owners(tree)}
    _echo_status((ok, tree))


@agentfi_cli.command(name="agent-type", help="Classify strategy agent accounts.")
@click.option("--chain", "chain", required=True)
@click.argument("addresses", nargs=-1, required=True)
def agent_type_cmd(chain: str, addresses: tuple[str, ...]) -> None:
    adapter = AgentRegistryAdapter(chain_id=_chain(chain))

    async def _classify() -> tuple[bool, Any]:
        out = {}
        for address in addresses:
            ok, agent_type = await adapter.find_agent_type(address)
            if not ok:
                return False, agent_type
            out[address] = agent_type
        return True, out

    _echo_status(asyncio.run(_classify()))


@agentfi_cli.command(name="gas-params", help="Blast gas parameters of a contract.")
@click.option("--chain", "chain", required=True)
@click.argument("contract")
def gas_params_cmd(chain: str, contract: str) -> None:
    adapter = GasAdapter(chain_id=_chain(chain))
    ok, params = asyncio.run(adapter.read_gas_params(contract))
    if ok:
        params = {
            **params.model_dump(),
            "gas_mode_name": params.gas_mode_name,
            "ether_balance_eth": format_units(params.ether_balance),
            "claim_rate": estimate_claim_rate(params.last_updated),
        }
    _echo_status((ok, params))


@agentfi_cli.command(name="claim-gas", help="Claim gas rewards via the GasCollector.")
@click.option("--chain", "chain", required=True)
@click.option("--account", "account", required=True, help="Configured account name.")
def claim_gas_cmd(chain: str, account: str) -> None:
    address, sign_callback = _signer(account)
    adapter = GasAdapter(
        chain_id=_chain(chain), wallet_address=address, sign_callback=sign_callback
    )
    _echo_status(asyncio.run(adapter.claim_gas()))


@agentfi_cli.command(name="transfer-eth", help="Send ETH from a configured account.")
@click.option("--chain", "chain", required=True)
@click.option("--account", "account", required=True, help="Configured account name.")
@click.option("--to", "to", required=True)
@click.option("--amount", "amount", required=True, help="Amount in ETH.")
def transfer_eth_cmd(chain: str, account: str, to: str, amount: str) -> None:
    chain_id = _chain(chain)
    sender = _account(account)
    try:
        amount_wei = to_wei_eth(amount)
        txn_hash = asyncio.run(transfer_eth(sender, to, amount_wei, chain_id))
    except (ValueError, RuntimeError) as exc:
        _echo_status((False, str(exc)))
        return
    _echo_status((True, {"txn_hash": txn_hash, "amount_wei": amount_wei}))


@agentfi_cli.command(name="contract", help="Look up an address from the book.")
@click.option("--chain", "chain", required=True)
@click.argument("name")
def contract_cmd(chain: str, name: str) -> None:
    chain_id = _chain(chain)
    try:
        address = contract_address(chain_id, name)
    except ValueError as exc:
        _echo_status((False, str(exc)))
        return
    _echo_json(
        {
            "name": name,
            "address": address,
            "explorer_url": get_explorer_address_link(chain_id, address),
        }
    )


def main() -> None:
    agentfi_cli()


if __name__ == "__main__":
    main()
