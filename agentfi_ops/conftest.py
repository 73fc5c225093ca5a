import pytest

from agentfi_ops.core.config import CONFIG, set_config


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")
    config.addinivalue_line(
        "markers", "requires_config: needs config.json with live RPC urls"
    )


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "smoke" in item.nodeid:
            item.add_marker(pytest.mark.smoke)

    if CONFIG.get("rpc_urls"):
        return
    skip = pytest.mark.skip(reason="no rpc_urls in config.json")
    for item in items:
        if "requires_config" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def isolated_config(monkeypatch):
    """Swap the global CONFIG for the test and restore it afterwards."""
    saved = dict(CONFIG)
    for key in (
        "ACCOUNTS",
        "ETHERSCAN_API_KEY",
        "FORK_NETWORK",
        "MAINNET_URL",
        "SEPOLIA_URL",
        "BLAST_URL",
        "BLAST_SEPOLIA_URL",
    ):
        monkeypatch.delenv(key, raising=False)
    set_config({})
    yield CONFIG
    set_config(saved)
