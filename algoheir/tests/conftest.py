"""
AlgoHeir test fixtures.

Addresses are freshly generated Algorand accounts; the custody record runs
against a SimulatedLedger whose clock the tests move by hand.
"""

import pytest
from algosdk import account

from contracts.custody import Custody
from contracts.environment import Call, SimulatedLedger
from contracts.events import RecordingSink

START_TIME = 1_700_000_000


def new_address() -> str:
    _, address = account.generate_account()
    return address


@pytest.fixture
def owner() -> str:
    return new_address()


@pytest.fixture
def heir() -> str:
    return new_address()


@pytest.fixture
def successor() -> str:
    return new_address()


@pytest.fixture
def stranger() -> str:
    return new_address()


@pytest.fixture
def ledger() -> SimulatedLedger:
    return SimulatedLedger(start_time=START_TIME)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def custody(ledger, owner, heir, sink) -> Custody:
    return Custody(ledger, Call(owner), heir, sinks=[sink])


@pytest.fixture
def funded(custody, stranger, sink) -> Custody:
    """Custody holding a balance of 10, with the deposit event cleared."""
    custody.receive(Call(stranger, value=10))
    sink.clear()
    return custody
