from agentfi_ops.core.adapters.BaseAdapter import BaseAdapter, require_wallet
from agentfi_ops.core.adapters.decorators import status_tuple

__all__ = ["BaseAdapter", "require_wallet", "status_tuple"]
