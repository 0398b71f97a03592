"""
Execution environment seen by the custody state machine.

The environment authenticates callers, supplies the current time and
performs outbound value transfers. ``SimulatedLedger`` is an in-process
stand-in used by the tests and for dry runs; on Algorand the AVM plays the
same role for the compiled contract.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from algosdk import encoding

logger = logging.getLogger(__name__)

ZERO_ADDRESS = encoding.encode_address(bytes(32))


def is_null(identity: Optional[str]) -> bool:
    # "" is never a valid Algorand address, so treating it as null rejects
    # nothing a caller could actually hold.
    return not identity or identity == ZERO_ADDRESS


@dataclass(frozen=True)
class Call:
    """One incoming call: authenticated sender, attached value, payload."""

    sender: str
    value: int = 0
    payload: bytes = b""


class Environment(Protocol):
    def now(self) -> int:
        ...

    def transfer(self, recipient: str, amount: int) -> bool:
        ...


# A hook runs while value is being delivered to its recipient. Raising
# makes the transfer fail.
RecipientHook = Callable[[str, int], None]


class SimulatedLedger:
    """
    Deterministic environment: a settable clock plus account balances.

    Recipient hooks model accounts that run code on receipt (and may call back
    into the custody record). ``fail_transfers_to`` makes every transfer to an
    account fail.
    """

    def __init__(self, start_time: int = 1_700_000_000):
        self._now = start_time
        self.balances: Dict[str, int] = defaultdict(int)
        self.hooks: Dict[str, RecipientHook] = {}
        self.rejecting: set = set()

    # ── Clock ────────────────────────────────────────────────────────────────
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set_time(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp
        return self._now

    # ── Transfers ────────────────────────────────────────────────────────────
    def on_receive(self, recipient: str, hook: RecipientHook) -> None:
        self.hooks[recipient] = hook

    def fail_transfers_to(self, recipient: str) -> None:
        self.rejecting.add(recipient)

    def transfer(self, recipient: str, amount: int) -> bool:
        if recipient in self.rejecting:
            logger.debug("Transfer of %d to %s rejected by recipient", amount, recipient)
            return False
        hook = self.hooks.get(recipient)
        if hook is not None:
            try:
                hook(recipient, amount)
            except Exception:
                logger.debug("Recipient hook for %s failed", recipient, exc_info=True)
                return False
        self.balances[recipient] += amount
        return True
