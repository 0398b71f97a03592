"""
Custody notifications.

Events are pure observability: the state machine hands them to an injected
sink after an operation commits, and the on-chain contract ``Log``s them as
``selector || fields`` (ARC-28 layout). ``decode_log`` maps such a log back to
the dataclass the local state machine would have emitted.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, fields
from typing import Callable, List, Optional, Type, Union

from algosdk import encoding

logger = logging.getLogger(__name__)

ADDRESS_LEN = 32
UINT64_LEN = 8


def event_selector(signature: str) -> bytes:
    """First 4 bytes of sha512_256 over the event signature."""
    return encoding.checksum(signature.encode())[:4]


@dataclass(frozen=True)
class Deposit:
    sender: str
    amount: int

    SIGNATURE = "Deposit(address,uint64)"


@dataclass(frozen=True)
class Withdrawal:
    recipient: str
    amount: int

    SIGNATURE = "Withdrawal(address,uint64)"


@dataclass(frozen=True)
class HeirChanged:
    previous_heir: str
    new_heir: str

    SIGNATURE = "HeirChanged(address,address)"


@dataclass(frozen=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str

    SIGNATURE = "OwnershipTransferred(address,address)"


Event = Union[Deposit, Withdrawal, HeirChanged, OwnershipTransferred]
EventSink = Callable[[Event], None]

EVENT_TYPES: List[Type] = [Deposit, Withdrawal, HeirChanged, OwnershipTransferred]
SELECTORS = {event_selector(cls.SIGNATURE): cls for cls in EVENT_TYPES}


def selector_of(event_type: Type) -> bytes:
    return event_selector(event_type.SIGNATURE)


def encode_event(event: Event) -> bytes:
    """Encode an event the way the contract logs it."""
    out = bytearray(selector_of(type(event)))
    for f in fields(event):
        value = getattr(event, f.name)
        if isinstance(value, int):
            out += value.to_bytes(UINT64_LEN, "big")
        else:
            out += encoding.decode_address(value)
    return bytes(out)


def decode_log(raw: Union[bytes, str]) -> Optional[Event]:
    """
    Decode one application log entry.

    ``raw`` may be the raw bytes or the base64 string algod returns.
    Returns None for logs that are not custody events (e.g. ABI return
    values, which algod also reports as logs).
    """
    if isinstance(raw, str):
        raw = base64.b64decode(raw)
    event_type = SELECTORS.get(raw[:4])
    if event_type is None:
        return None

    body = raw[4:]
    widths = [UINT64_LEN if _is_uint(f) else ADDRESS_LEN for f in fields(event_type)]
    if len(body) != sum(widths):
        raise ValueError(
            f"{event_type.__name__} log body is {len(body)} bytes, expected {sum(widths)}"
        )

    values = []
    for f in fields(event_type):
        if _is_uint(f):
            values.append(int.from_bytes(body[:UINT64_LEN], "big"))
            body = body[UINT64_LEN:]
        else:
            values.append(encoding.encode_address(body[:ADDRESS_LEN]))
            body = body[ADDRESS_LEN:]
    return event_type(*values)


def _is_uint(f) -> bool:
    return f.type in ("int", int)


class RecordingSink:
    """Keeps every delivered event, in order."""

    def __init__(self):
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: Type) -> List[Event]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


class LoggingSink:
    """Writes each event through ``logging``."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def __call__(self, event: Event) -> None:
        self.log.log(self.level, "custody event %s", event)
