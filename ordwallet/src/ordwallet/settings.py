"""
Settings management for ordwallet.

Uses pydantic-settings with the following sources:
1. TOML configuration file (~/.ordwallet/config.toml)
2. Environment variables
3. Keyword overrides (from the calling command)

Priority (highest to lowest):
1. Keyword overrides
2. Environment variables
3. Config file
4. Default values

Environment Variable Naming:
    - Use uppercase with double underscore for nested settings
    - Examples: BITCOIN__RPC_URL, INDEX__SYNC_ATTEMPTS, WALLET__NAME
    - Maps to TOML sections: BITCOIN__RPC_URL -> [bitcoin] rpc_url
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from ordwallet.bitcoin import NetworkType
from ordwallet.constants import (
    DEFAULT_INDEX_TIMEOUT,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_SYNC_ATTEMPTS,
    DEFAULT_SYNC_INTERVAL,
    DEFAULT_WALLET_NAME,
)


class BitcoinSettings(BaseModel):
    """Bitcoin Core RPC configuration."""

    rpc_url: str = Field(
        default="http://127.0.0.1:8332",
        description="Bitcoin Core RPC URL",
    )
    rpc_user: str = Field(
        default="",
        description="Bitcoin Core RPC username",
    )
    rpc_password: SecretStr = Field(
        default=SecretStr(""),
        description="Bitcoin Core RPC password",
    )
    rpc_timeout: float = Field(
        default=DEFAULT_RPC_TIMEOUT,
        gt=0.0,
        description="Timeout in seconds for RPC calls",
    )


class IndexSettings(BaseModel):
    """ord index server configuration."""

    url: str = Field(
        default="http://127.0.0.1:80",
        description="Base URL of the ord index server JSON API",
    )
    timeout: float = Field(
        default=DEFAULT_INDEX_TIMEOUT,
        gt=0.0,
        description="Timeout in seconds for index HTTP requests",
    )
    sync_attempts: int = Field(
        default=DEFAULT_SYNC_ATTEMPTS,
        ge=1,
        description="Number of /blockcount polls before giving up on index sync",
    )
    sync_interval: float = Field(
        default=DEFAULT_SYNC_INTERVAL,
        ge=0.0,
        description="Delay in seconds between /blockcount polls",
    )


class WalletSettings(BaseModel):
    """Wallet configuration."""

    name: str = Field(
        default=DEFAULT_WALLET_NAME,
        min_length=1,
        description="Bitcoin Core wallet name",
    )
    no_sync: bool = Field(
        default=False,
        description="Do not wait for the index to catch up with Bitcoin Core",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Log level: TRACE, DEBUG, INFO, WARNING, ERROR",
    )
    sensitive: bool = Field(
        default=False,
        description="Enable sensitive logging (descriptors, mnemonics)",
    )


class OrdWalletSettings(BaseSettings):
    """
    Main ordwallet settings class.

    Loads configuration from multiple sources with the following priority:
    1. Keyword overrides passed to the constructor
    2. Environment variables
    3. TOML config file (~/.ordwallet/config.toml)
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Data directory (defaults to ~/.ordwallet)",
    )
    network: NetworkType = Field(
        default=NetworkType.MAINNET,
        description="Bitcoin network (mainnet, testnet, signet, regtest)",
    )

    bitcoin: BitcoinSettings = Field(default_factory=BitcoinSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    wallet: WalletSettings = Field(default_factory=WalletSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_source = TomlConfigSettingsSource(settings_cls)
        return (
            init_settings,
            env_settings,
            toml_source,
        )

    def get_data_dir(self) -> Path:
        """Get the data directory, using default if not set."""
        if self.data_dir is not None:
            return self.data_dir
        return get_default_data_dir()


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """
    Settings source that reads from a TOML config file.

    The config file is expected at ~/.ordwallet/config.toml,
    $ORDWALLET_DATA_DIR/config.toml, or $ORDWALLET_CONFIG_FILE.
    """

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._config: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        config_path = get_config_path()

        if not config_path.exists():
            logger.debug(f"Config file not found at {config_path}, using defaults")
            return

        try:
            import tomllib

            with open(config_path, "rb") as f:
                self._config = tomllib.load(f)

            logger.debug(f"Loaded config from {config_path}")
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Invalid TOML syntax in config file {config_path}")
            logger.error(f"Error: {e}")
            logger.error("Please fix the syntax errors in your config file and try again.")
            sys.exit(1)
        except OSError as e:
            logger.error(f"Failed to load config from {config_path}: {e}")
            sys.exit(1)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        value = self._config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return self._config


def get_default_data_dir() -> Path:
    """
    Get the default ordwallet data directory.

    Returns ~/.ordwallet or $ORDWALLET_DATA_DIR if set.
    """
    env_path = os.getenv("ORDWALLET_DATA_DIR")
    return Path(env_path) if env_path else Path.home() / ".ordwallet"


def get_config_path() -> Path:
    """Get the path to the config file."""
    env_path = os.environ.get("ORDWALLET_CONFIG_FILE")
    if env_path:
        return Path(env_path)
    return get_default_data_dir() / "config.toml"


# Global settings instance (lazy-loaded)
_settings: OrdWalletSettings | None = None


def get_settings(**overrides: Any) -> OrdWalletSettings:
    """
    Get the settings instance.

    On first call, loads settings from all sources. Subsequent calls
    return the cached instance unless reset_settings() is called.
    """
    global _settings
    if _settings is None or overrides:
        _settings = OrdWalletSettings(**overrides)
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


__all__ = [
    "BitcoinSettings",
    "IndexSettings",
    "LoggingSettings",
    "OrdWalletSettings",
    "WalletSettings",
    "get_config_path",
    "get_default_data_dir",
    "get_settings",
    "reset_settings",
]
