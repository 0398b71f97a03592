"""
Custody error taxonomy.

Every rejection of a custody call raises one of these. The same ``code``
prefixes the ``Assert`` comments of the on-chain contract, so an algod
rejection message can be matched against the class that the local state
machine would have raised.
"""

from enum import Enum


class Role(Enum):
    OWNER = "owner"
    HEIR = "heir"


class CustodyError(Exception):
    """Base class: the current call is rejected and leaves no effect."""

    code = "CustodyError"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"{self.code}: {detail}" if detail else self.code)


class Unauthorized(CustodyError):
    code = "Unauthorized"

    def __init__(self, role: Role, caller: str = ""):
        self.role = role
        self.caller = caller
        super().__init__(f"{role.value} required")


class InvalidSuccessor(CustodyError):
    code = "InvalidSuccessor"

    def __init__(self, candidate, reason: str):
        self.candidate = candidate
        super().__init__(reason)


class InsufficientBalance(CustodyError):
    code = "InsufficientBalance"

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"{requested} > {available}")


class OwnerStillActive(CustodyError):
    code = "OwnerStillActive"

    def __init__(self, remaining: int):
        self.remaining = remaining
        super().__init__(f"claimable in {remaining}s")


class ReentrantCall(CustodyError):
    code = "ReentrantCall"


class TransferFailed(CustodyError):
    code = "TransferFailed"

    def __init__(self, recipient: str, amount: int):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"{amount} to {recipient}")


class InvalidCall(CustodyError):
    code = "InvalidCall"


ALL_ERRORS = (
    Unauthorized,
    InvalidSuccessor,
    InsufficientBalance,
    OwnerStillActive,
    ReentrantCall,
    TransferFailed,
    InvalidCall,
)
