import json
import os
from pathlib import Path
from typing import Any

_CONFIG_ENV_KEYS = ("AGENTFI_CONFIG_PATH", "AGENTFI_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"

# Env fallbacks carried over from the hardhat .env layout.
_RPC_URL_ENV_KEYS: dict[int, str] = {
    1: "MAINNET_URL",
    11155111: "SEPOLIA_URL",
    81457: "BLAST_URL",
    168587773: "BLAST_SEPOLIA_URL",
}


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        parsed = json.loads(cfg_path.read_text())
    except (OSError, json.JSONDecodeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def set_rpc_urls(rpc_urls: dict[Any, Any]) -> None:
    CONFIG["rpc_urls"] = rpc_urls


def get_rpc_urls() -> dict[str, Any]:
    mapping: dict[str, Any] = {
        str(chain_id): os.environ[env_key]
        for chain_id, env_key in _RPC_URL_ENV_KEYS.items()
        if os.environ.get(env_key, "").strip()
    }
    for key, value in (CONFIG.get("rpc_urls") or {}).items():
        mapping[str(key)] = value
    return mapping


def get_accounts() -> dict[str, dict[str, str]]:
    accounts = CONFIG.get("accounts")
    if isinstance(accounts, dict) and accounts:
        return accounts
    raw = os.environ.get("ACCOUNTS", "").strip()
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("ACCOUNTS env var is not valid JSON") from exc
    return parsed if isinstance(parsed, dict) else {}


def get_account(name: str) -> dict[str, str]:
    accounts = get_accounts()
    account = accounts.get(name)
    if not account or not account.get("key"):
        raise ValueError(f"Account '{name}' not configured (need a 'key' entry)")
    return account


def get_etherscan_api_key() -> str | None:
    system = CONFIG.get("system", {})
    api_key = system.get("etherscan_api_key")
    if api_key:
        return str(api_key).strip()
    return os.environ.get("ETHERSCAN_API_KEY")


def get_fork_network() -> str | None:
    system = CONFIG.get("system", {})
    fork = system.get("fork_network") or os.environ.get("FORK_NETWORK")
    if fork:
        return str(fork).strip().lower()
    return None
