import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError

DEFAULT_NETWORK = "mainnet"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Config:
    network: str = DEFAULT_NETWORK
    rpc_url: Optional[str] = None
    explorer_api_key: Optional[str] = None
    explorer_api_url: Optional[str] = None
    request_timeout: float = 10.0
    log_level: str = "WARNING"


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config() -> Config:
    """Load configuration from environment variables."""
    network = os.getenv("CELO_NETWORK", DEFAULT_NETWORK).strip().lower() or DEFAULT_NETWORK
    rpc_url = _optional_env("CELO_RPC_URL")
    explorer_api_url = _optional_env("CELOSCAN_API_URL")
    timeout_raw = os.getenv("REQUEST_TIMEOUT", "10")
    try:
        timeout = float(timeout_raw)
    except ValueError as exc:
        raise ConfigurationError(f"REQUEST_TIMEOUT must be a number, got '{timeout_raw}'.") from exc
    if timeout <= 0:
        raise ConfigurationError("REQUEST_TIMEOUT must be positive.")

    return Config(
        network=network,
        rpc_url=rpc_url,
        explorer_api_key=_optional_env("CELOSCAN_API_KEY"),
        explorer_api_url=explorer_api_url.rstrip("/") if explorer_api_url else None,
        request_timeout=timeout,
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
    )


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging once, at process start-up."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=DEFAULT_LOG_FORMAT)
    logging.getLogger(__name__).info("celo-adapter starting (log level %s)", level.upper())
