from __future__ import annotations

from agentfi_ops.core.constants.chains import CHAIN_EXPLORER_URLS


def get_explorer_transaction_link(chain_id: int, tx_hash: str) -> str | None:
    base_url = CHAIN_EXPLORER_URLS.get(int(chain_id))
    if not base_url:
        return None
    return f"{base_url}tx/{tx_hash}"


def get_explorer_address_link(chain_id: int, address: str) -> str | None:
    base_url = CHAIN_EXPLORER_URLS.get(int(chain_id))
    if not base_url:
        return None
    return f"{base_url}address/{address}"
