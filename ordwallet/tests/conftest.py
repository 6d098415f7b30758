"""
Pytest configuration and fixtures for ordwallet tests.
"""

import pytest
from loguru import logger

from ordwallet.settings import reset_settings
from ordwallet.wallet.bip32 import mnemonic_to_seed


@pytest.fixture
def test_mnemonic() -> str:
    """Test mnemonic (BIP39 test vector)"""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def test_seed(test_mnemonic: str) -> bytes:
    return mnemonic_to_seed(test_mnemonic)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep the user's config file and environment out of every test."""
    monkeypatch.setenv("ORDWALLET_CONFIG_FILE", str(tmp_path / "config.toml"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def caplog_loguru():
    """Collect loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
