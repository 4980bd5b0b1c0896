"""
Vestor Configuration

Settings are read from ``VESTOR_*`` environment variables when this module is
imported. Mainnet refuses to fall back to a default registry id; testnet
uses a fixed development registry and warns about it.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

from vestor.core.constants import NONCE_MAX

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


DEFAULT_TESTNET_REGISTRY_ID = "vestor-testnet"


def _get_network() -> NetworkType:
    raw = os.getenv("VESTOR_NETWORK", "testnet").strip().lower()
    try:
        return NetworkType(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"VESTOR_NETWORK must be one of {[n.value for n in NetworkType]}, got {raw!r}"
        ) from exc


def _get_int(env_var: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if not minimum <= value <= maximum:
        raise ConfigurationError(f"{env_var} must be between {minimum} and {maximum}, got {value}")
    return value


def _get_registry_id(network: NetworkType) -> str:
    value = os.getenv("VESTOR_REGISTRY_ID", "").strip()
    if value:
        return value
    if network is NetworkType.MAINNET:
        raise ConfigurationError(
            "CRITICAL: VESTOR_REGISTRY_ID environment variable required for mainnet."
        )
    logger.warning(
        "VESTOR_REGISTRY_ID not set, using %s for testnet.",
        DEFAULT_TESTNET_REGISTRY_ID,
        extra={"event": "config.registry_default", "registry_id": DEFAULT_TESTNET_REGISTRY_ID},
    )
    return DEFAULT_TESTNET_REGISTRY_ID


NETWORK = _get_network()
DATA_DIR = os.getenv("VESTOR_DATA_DIR", os.path.join(os.getcwd(), "vestor_data"))
REGISTRY_ID = _get_registry_id(NETWORK)
REGISTRY_NONCE = _get_int("VESTOR_REGISTRY_NONCE", 0, 0, NONCE_MAX)
ASSET_ID = os.getenv("VESTOR_ASSET_ID", "VEST").strip() or "VEST"
LOG_LEVEL = os.getenv("VESTOR_LOG_LEVEL", "WARNING").strip().upper()
LOG_JSON = os.getenv("VESTOR_LOG_JSON", "0").strip() == "1"
LOG_FILE = os.getenv("VESTOR_LOG_FILE", "").strip() or None

if not isinstance(logging.getLevelName(LOG_LEVEL), int):
    raise ConfigurationError(f"VESTOR_LOG_LEVEL {LOG_LEVEL!r} is not a logging level")
