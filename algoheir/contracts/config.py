"""
Runtime configuration.

Values come from the process environment, optionally seeded from a ``.env``
file. Nothing here exits the process: scripts turn ``ConfigError`` into a
message and ``sys.exit`` themselves.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

from algosdk.error import AlgodHTTPError
from algosdk.v2client import algod
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Fixed succession delay, in seconds (the AVM's timestamp unit).
INACTIVITY_PERIOD = 30 * 24 * 60 * 60

# Minimum balance an Algorand account must hold before it can send inner
# payments; deploy funds the application account with this much.
APP_MIN_BALANCE_MICROALGOS = 100_000

ALGOD_SERVERS = {
    "testnet":  ("https://testnet-api.algonode.network", "", ""),
    "localnet": ("http://localhost", 4001, "a" * 64),
}

# ── Rate-limit helpers ────────────────────────────────────────────────────────
# AlgoNode free tier: ~1 req/s on algod; add backoff on HTTP 429.
CALL_DELAY = 0.5
MAX_RETRIES = 5
BACKOFF_BASE = 2


class ConfigError(Exception):
    """Raised when the environment does not describe a usable deployment."""


@dataclass(frozen=True)
class Settings:
    network: str
    algod_server: str
    algod_port: Union[int, str]
    algod_token: str
    mnemonic: Optional[str] = None
    heir_address: Optional[str] = None
    app_id: Optional[int] = None

    @property
    def algod_url(self) -> str:
        if not self.algod_port:
            return self.algod_server
        return f"{self.algod_server}:{self.algod_port}"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment (and ``.env`` when present)."""
    load_dotenv(env_file)

    network = os.getenv("NETWORK", "testnet")
    if network not in ALGOD_SERVERS:
        raise ConfigError(f"Unsupported network: {network}")
    server, port, token = ALGOD_SERVERS[network]

    app_id = os.getenv("APP_ID") or None
    if app_id is not None:
        try:
            app_id = int(app_id)
        except ValueError:
            raise ConfigError(f"APP_ID must be an integer, got {app_id!r}") from None

    return Settings(
        network=network,
        algod_server=server,
        algod_port=port,
        algod_token=token,
        mnemonic=os.getenv("ALGO_MNEMONIC") or None,
        heir_address=os.getenv("HEIR_ADDRESS") or None,
        app_id=app_id,
    )


def make_algod_client(settings: Settings) -> algod.AlgodClient:
    headers = {"User-Agent": "algosdk"}
    if settings.algod_token:
        headers["x-api-key"] = settings.algod_token
    return algod.AlgodClient(settings.algod_token, settings.algod_url, headers=headers)


def retry_on_429(fn, *args, **kwargs):
    """Call fn(*args, **kwargs) retrying up to MAX_RETRIES times on HTTP 429."""
    for attempt in range(MAX_RETRIES):
        try:
            result = fn(*args, **kwargs)
            time.sleep(CALL_DELAY)
            return result
        except AlgodHTTPError as exc:
            if "429" in str(exc) or getattr(exc, "code", None) == 429:
                wait = BACKOFF_BASE ** attempt
                logger.warning(
                    "Rate limited, retrying in %ss (attempt %d/%d)", wait, attempt + 1, MAX_RETRIES
                )
                time.sleep(wait)
            else:
                raise
    raise RuntimeError("algod rate limit: max retries exceeded")
