"""
Pytest fixtures for the Jollfi SDK tests.
"""
import time

import pytest

from jollfi_sdk.chain._rate_limited_log import reset_rate_limited_log
from jollfi_sdk.chain.client import SuiGameClient
from jollfi_sdk.chain.signer import Ed25519Signer
from jollfi_sdk.chain.stub_transport import StubTransport
from jollfi_sdk.service import GameService
from jollfi_sdk.storage import InMemoryDocumentStore

TEST_SEED = bytes(range(32))
TEST_PACKAGE_ID = "0x" + "a1" * 32
TEST_POOL_ID = "0x" + "b2" * 32
TEST_MODULE = "jollfi_wallet"
TEST_RPC_URL = "https://fullnode.testnet.example:443"

# Scenario coins: two stake coins and one spare for gas
TEST_COINS = {"0xc1": 500, "0xc2": 300, "0xc3": 200}

REQUESTER = "0x" + "11" * 32
ACCEPTER = "0x" + "22" * 32

ENV_KEYS = (
    "SUI_NETWORK_URL", "SUI_PRIVATE_KEY", "SUI_PACKAGE_ID", "SUI_POOL_ID",
    "SUI_MODULE_NAME", "SUI_COIN_TYPE", "SUI_GAS_BUDGET", "RPC_TIMEOUT",
    "MONGODB_URI", "MONGO_DATABASE", "LOG_LEVEL", "ENVIRONMENT",
)


# Make time.sleep instantaneous so polling doesn't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_log_cache():
    """Rate-limited warnings must not leak between tests."""
    reset_rate_limited_log()
    yield
    reset_rate_limited_log()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every configuration variable, restoring the environment afterwards."""
    for key in ENV_KEYS:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


@pytest.fixture
def signer():
    return Ed25519Signer(TEST_SEED)


@pytest.fixture
def stub_transport(signer):
    """Stub node holding the scenario coins and the stake pool."""
    return StubTransport(
        owner=signer.address,
        coins=dict(TEST_COINS),
        objects={TEST_POOL_ID: f"{TEST_PACKAGE_ID}::{TEST_MODULE}::StakePool"},
        epoch=42,
    )


@pytest.fixture
def game_client(stub_transport, signer):
    return SuiGameClient(
        stub_transport,
        signer,
        package_id=TEST_PACKAGE_ID,
        module_name=TEST_MODULE,
        pool_id=TEST_POOL_ID,
    )


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def game_service(game_client, memory_store):
    return GameService(game_client, memory_store)
