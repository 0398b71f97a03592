"""
Custody state machine.

One owner, one heir, one balance, one inactivity timer. The owner may
withdraw (a zero-amount withdraw is the heartbeat) and reassign the heir;
once the owner has been inactive for the inactivity period the heir may claim
ownership, naming a successor of its own in the same step.

Every operation is all-or-nothing: state is snapshotted on entry and restored
if anything raises, including failures inside nested calls made by a
transfer recipient. Events reach the sinks only once the outermost operation
commits.

Invariants after every completed operation:
  - owner != heir
  - heir is never the null identity
  - last_activity never decreases
  - balance == deposits - withdrawals >= 0
  - at most one withdraw is in flight
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, List, Optional

from contracts.config import INACTIVITY_PERIOD
from contracts.environment import Call, Environment, is_null
from contracts.errors import (
    InsufficientBalance,
    InvalidCall,
    InvalidSuccessor,
    OwnerStillActive,
    ReentrantCall,
    Role,
    TransferFailed,
    Unauthorized,
)
from contracts.events import (
    Deposit,
    Event,
    EventSink,
    HeirChanged,
    OwnershipTransferred,
    Withdrawal,
)

logger = logging.getLogger(__name__)


@dataclass
class CustodyRecord:
    owner: str
    heir: str
    last_activity: int
    balance: int = 0


def has_role(record: CustodyRecord, caller: str, role: Role) -> bool:
    """Capability check evaluated before any mutation."""
    if role is Role.OWNER:
        return caller == record.owner
    return caller == record.heir


class Custody:
    def __init__(
        self,
        env: Environment,
        call: Call,
        heir: str,
        *,
        sinks: Optional[List[EventSink]] = None,
        inactivity_period: int = INACTIVITY_PERIOD,
    ):
        if call.value:
            raise InvalidCall("construction does not accept value")
        if is_null(heir):
            raise InvalidSuccessor(heir, "heir must not be null")
        if heir == call.sender:
            raise InvalidSuccessor(heir, "heir must differ from owner")

        self.env = env
        self.inactivity_period = inactivity_period
        self._record = CustodyRecord(owner=call.sender, heir=heir, last_activity=env.now())
        self._sinks: List[EventSink] = list(sinks or [])
        self._pending: List[Event] = []
        self._depth = 0
        self._entered = False
        logger.info("Custody created: owner=%s heir=%s", call.sender, heir)

    # ── Read-only views ───────────────────────────────────────────────────────
    @property
    def owner(self) -> str:
        return self._record.owner

    @property
    def heir(self) -> str:
        return self._record.heir

    @property
    def last_activity(self) -> int:
        return self._record.last_activity

    def record(self) -> CustodyRecord:
        """Copy of the persisted fields."""
        return replace(self._record)

    def balance(self) -> int:
        return self._record.balance

    def claimable_at(self) -> int:
        return self._record.last_activity + self.inactivity_period

    def time_until_claimable(self) -> int:
        return max(0, self.claimable_at() - self.env.now())

    def can_claim(self) -> bool:
        return self.env.now() >= self.claimable_at()

    def subscribe(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    # ── Owner operations ──────────────────────────────────────────────────────
    def update_heir(self, call: Call, new_heir: str) -> None:
        """Replace the heir. Not evidence of owner activity: the timer is untouched."""
        with self._atomic():
            self._require_no_value(call)
            self._require_role(call, Role.OWNER)
            if is_null(new_heir):
                raise InvalidSuccessor(new_heir, "heir must not be null")
            if new_heir == self._record.owner:
                raise InvalidSuccessor(new_heir, "heir must differ from owner")

            previous = self._record.heir
            self._record.heir = new_heir
            self._emit(HeirChanged(previous, new_heir))
            logger.info("Heir changed: %s -> %s", previous, new_heir)

    def withdraw(self, call: Call, amount: int) -> None:
        """
        Pay ``amount`` out to the owner and reset the inactivity timer.

        ``amount == 0`` is the heartbeat: the timer resets, nothing moves and
        no Withdrawal event is emitted.
        """
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._atomic():
            self._require_no_value(call)
            self._require_role(call, Role.OWNER)
            with self._reentrancy_guard():
                available = self._record.balance
                if amount > available:
                    raise InsufficientBalance(amount, available)

                self._record.last_activity = self.env.now()
                if amount == 0:
                    logger.info("Heartbeat from %s at %d", call.sender, self._record.last_activity)
                    return

                owner = self._record.owner
                self._record.balance = available - amount
                if not self.env.transfer(owner, amount):
                    raise TransferFailed(owner, amount)
                self._emit(Withdrawal(owner, amount))
                logger.info("Withdrew %d to %s", amount, owner)

    # ── Heir operation ────────────────────────────────────────────────────────
    def claim_ownership(self, call: Call, new_heir: str) -> None:
        """Promote the heir to owner once the owner has been inactive long enough."""
        with self._atomic():
            self._require_no_value(call)
            self._require_role(call, Role.HEIR)
            remaining = self.time_until_claimable()
            if not self.can_claim():
                raise OwnerStillActive(remaining)
            if is_null(new_heir):
                raise InvalidSuccessor(new_heir, "successor must not be null")
            if new_heir == call.sender:
                raise InvalidSuccessor(new_heir, "successor must differ from claimant")

            previous_owner = self._record.owner
            self._record.owner = call.sender
            self._record.heir = new_heir
            self._record.last_activity = self.env.now()
            self._emit(OwnershipTransferred(previous_owner, call.sender))
            self._emit(HeirChanged(call.sender, new_heir))
            logger.info("Ownership claimed: %s -> %s, heir=%s", previous_owner, call.sender, new_heir)

    # ── Value-receiving entry points ──────────────────────────────────────────
    def deliver(self, call: Call) -> None:
        """Route an unsolicited call: with payload to fallback, without to receive."""
        if call.payload:
            self.fallback(call)
        else:
            self.receive(call)

    def receive(self, call: Call) -> None:
        """Plain value transfer. Zero value is accepted as a silent no-op."""
        with self._atomic():
            if call.value < 0:
                raise InvalidCall("negative value")
            if call.value:
                self._credit(call)

    def fallback(self, call: Call) -> None:
        """Value transfer with payload. A payload without value is rejected."""
        with self._atomic():
            if call.value <= 0:
                raise InvalidCall("payload without value")
            self._credit(call)

    def _credit(self, call: Call) -> None:
        self._record.balance += call.value
        self._emit(Deposit(call.sender, call.value))
        logger.info("Deposit of %d from %s", call.value, call.sender)

    # ── Guards ────────────────────────────────────────────────────────────────
    def _require_role(self, call: Call, role: Role) -> None:
        if not has_role(self._record, call.sender, role):
            raise Unauthorized(role, call.sender)

    @staticmethod
    def _require_no_value(call: Call) -> None:
        if call.value:
            raise InvalidCall("operation does not accept value")

    @contextmanager
    def _reentrancy_guard(self) -> Iterator[None]:
        if self._entered:
            raise ReentrantCall()
        self._entered = True
        try:
            yield
        finally:
            self._entered = False

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        snapshot = replace(self._record)
        mark = len(self._pending)
        self._depth += 1
        try:
            yield
        except Exception as exc:
            self._record = snapshot
            del self._pending[mark:]
            logger.debug("Call rejected: %s", exc)
            raise
        finally:
            self._depth -= 1

        if self._depth == 0:
            events, self._pending = self._pending, []
            self._publish(events)

    def _emit(self, event: Event) -> None:
        self._pending.append(event)

    def _publish(self, events: List[Event]) -> None:
        for event in events:
            for sink in self._sinks:
                try:
                    sink(event)
                except Exception:
                    logger.warning("Event sink %r failed on %s", sink, event, exc_info=True)
