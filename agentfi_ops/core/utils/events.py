from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from hexbytes import HexBytes
from loguru import logger
from pydantic import BaseModel, Field

from agentfi_ops.core.constants import BYTES32_ZERO
from agentfi_ops.core.utils.collections import to_bytes32
from agentfi_ops.core.utils.network import contract_address
from agentfi_ops.core.utils.transaction import wait_for_transaction_receipt

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
AGENT_REGISTERED_TOPIC = (
    "0xae6249e1b0de18c2723755a5833e4712be14aaa5c1d2b8923223ad3784964f6e"
)


class EventsNotFoundError(RuntimeError):
    def __init__(self, txn_hash: str, receipt: dict[str, Any] | None = None):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(f"events not found in transaction {txn_hash}")


class AgentCreationSummary(BaseModel):
    txn_hash: str | None = None
    log_count: int = 0
    genesis_agent_ids: list[int] = Field(default_factory=list)
    genesis_tba_agent_ids: list[int] = Field(default_factory=list)
    strategy_agent_ids: list[int] = Field(default_factory=list)
    strategy_tba_agent_ids: list[int] = Field(default_factory=list)


def _hex(value: Any) -> str:
    if isinstance(value, str):
        text = value.lower()
        return text if text.startswith("0x") else f"0x{text}"
    return "0x" + bytes(HexBytes(value)).hex()


def _log_field(log: Any, name: str) -> Any:
    if isinstance(log, dict):
        return log.get(name)
    return getattr(log, name, None)


def _topics(log: Any) -> list[str]:
    return [_hex(t) for t in (_log_field(log, "topics") or [])]


def filter_logs(
    logs: Iterable[Any],
    address: str | None = None,
    topics: Sequence[str | None] = (),
    exact_topic_count: bool = True,
) -> list[Any]:
    """Keep logs emitted by ``address`` whose topics match ``topics`` by position.

    ``None`` in ``topics`` matches anything in that slot. With
    ``exact_topic_count`` a log must carry exactly ``len(topics)`` topics.
    """
    wanted = [t.lower() if t is not None else None for t in topics]
    matched = []
    for log in logs:
        if address is not None:
            emitter = _log_field(log, "address")
            if not emitter or str(emitter).lower() != address.lower():
                continue
        log_topics = _topics(log)
        if exact_topic_count and len(log_topics) != len(wanted):
            continue
        if len(log_topics) < len(wanted):
            continue
        if all(w is None or w == t for w, t in zip(wanted, log_topics)):
            matched.append(log)
    return matched


def _topic_int(log: Any, index: int) -> int:
    return int(_topics(log)[index], 16)


def minted_token_ids(logs: Iterable[Any], collection: str) -> list[int]:
    """ERC-721 ids minted (transferred from the zero address) by ``collection``."""
    mints = filter_logs(
        logs, address=collection, topics=[TRANSFER_TOPIC, BYTES32_ZERO, None, None]
    )
    return [_topic_int(log, 3) for log in mints]


def registered_agent_ids(
    logs: Iterable[Any], registry: str, collection: str
) -> list[int]:
    registered = filter_logs(
        logs,
        address=registry,
        topics=[AGENT_REGISTERED_TOPIC, None, to_bytes32(collection), None],
    )
    return [_topic_int(log, 3) for log in registered]


def _plural(count: int, noun: str) -> str:
    return f"1 {noun}" if count == 1 else f"{count} {noun}s"


def summarize_agent_creation(receipt: Any, chain_id: int) -> AgentCreationSummary:
    logs = list(_log_field(receipt, "logs") or [])
    registry = contract_address(chain_id, "agent_registry")
    genesis = contract_address(chain_id, "genesis_collection")
    strategy = contract_address(chain_id, "strategy_collection")

    tx_hash = _log_field(receipt, "transactionHash")
    summary = AgentCreationSummary(
        txn_hash=_hex(tx_hash) if tx_hash is not None else None,
        log_count=len(logs),
        genesis_agent_ids=minted_token_ids(logs, genesis),
        genesis_tba_agent_ids=registered_agent_ids(logs, registry, genesis),
        strategy_agent_ids=minted_token_ids(logs, strategy),
        strategy_tba_agent_ids=registered_agent_ids(logs, registry, strategy),
    )

    groups = [
        (summary.genesis_agent_ids, "genesis agent NFT"),
        (summary.genesis_tba_agent_ids, "genesis agent TBA"),
        (summary.strategy_agent_ids, "strategy agent NFT"),
        (summary.strategy_tba_agent_ids, "strategy agent TBA"),
    ]
    for ids, noun in groups:
        if ids:
            logger.info(
                f"Created {_plural(len(ids), noun)}. "
                f"Agent IDs {', '.join(str(i) for i in ids)}"
            )
    return summary


async def watch_tx_for_events(
    chain_id: int, txn_hash: str, confirmations: int | None = None
) -> AgentCreationSummary:
    receipt = await wait_for_transaction_receipt(
        chain_id, txn_hash, confirmations=confirmations
    )
    logs = _log_field(receipt, "logs") or []
    if not logs:
        raise EventsNotFoundError(txn_hash, dict(receipt))
    logger.info(f"{len(logs)} events in {txn_hash}")
    return summarize_agent_creation(receipt, chain_id)
