"""
Configuration for the Jollfi SDK.

Settings are read from the process environment, optionally seeded from a
``.env`` file via python-dotenv.
"""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .exceptions import ConfigurationError
from .models import DEFAULT_COIN_TYPE

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://fullnode.testnet.sui.io:443"
DEFAULT_MODULE_NAME = "jollfi_wallet"
DEFAULT_GAS_BUDGET = "10000000"
DEFAULT_TIMEOUT = 30
DEFAULT_DATABASE = "jollfi_games"


class Settings(BaseModel):
    """Runtime configuration consumed by the chain client and game service"""
    rpc_url: str = DEFAULT_RPC_URL
    private_key: str = ""
    package_id: str = ""
    pool_id: str = ""
    module_name: str = DEFAULT_MODULE_NAME
    coin_type: str = DEFAULT_COIN_TYPE
    gas_budget: str = DEFAULT_GAS_BUDGET
    request_timeout: int = DEFAULT_TIMEOUT
    mongo_uri: Optional[str] = None
    mongo_database: str = DEFAULT_DATABASE
    log_level: str = "info"
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_required(self) -> None:
        """
        Ensure the settings needed to sign and submit transactions are present.

        Raises:
            ConfigurationError: If any required value is missing or invalid
        """
        required = {
            "SUI_PRIVATE_KEY": self.private_key,
            "SUI_PACKAGE_ID": self.package_id,
            "SUI_POOL_ID": self.pool_id,
            "SUI_MODULE_NAME": self.module_name,
        }
        missing: List[str] = [key for key, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"required environment variables are not set: {', '.join(sorted(missing))}"
            )
        if not self.gas_budget.isdigit():
            raise ConfigurationError(f"SUI_GAS_BUDGET must be a decimal string, got {self.gas_budget!r}")
        if self.request_timeout <= 0:
            raise ConfigurationError("RPC_TIMEOUT must be positive")


def _get_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    return value if value is not None else default


def _get_env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", key, value, default)
        return default


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional path to a dotenv file. When omitted, python-dotenv
            searches for a ``.env`` file from the current directory upwards.
            Values already present in the environment take precedence.

    Returns:
        Populated Settings instance (not yet validated)
    """
    if not load_dotenv(env_file):
        logger.debug("No .env file loaded, using process environment only")

    return Settings(
        rpc_url=_get_env("SUI_NETWORK_URL", DEFAULT_RPC_URL),
        private_key=_get_env("SUI_PRIVATE_KEY", ""),
        package_id=_get_env("SUI_PACKAGE_ID", ""),
        pool_id=_get_env("SUI_POOL_ID", ""),
        module_name=_get_env("SUI_MODULE_NAME", DEFAULT_MODULE_NAME),
        coin_type=_get_env("SUI_COIN_TYPE", DEFAULT_COIN_TYPE),
        gas_budget=_get_env("SUI_GAS_BUDGET", DEFAULT_GAS_BUDGET),
        request_timeout=_get_env_int("RPC_TIMEOUT", DEFAULT_TIMEOUT),
        mongo_uri=os.environ.get("MONGODB_URI") or None,
        mongo_database=_get_env("MONGO_DATABASE", DEFAULT_DATABASE),
        log_level=_get_env("LOG_LEVEL", "info"),
        environment=_get_env("ENVIRONMENT", "development"),
    )


def configure_logging(level: str = "info") -> None:
    """Configure root logging for applications embedding the SDK"""
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
