"""
AlgoHeir — Inactivity-Triggered Custody Smart Contract
=======================================================
Built with Beaker 1.x + PyTEAL for Algorand

Architecture:
  - Deployer becomes the owner and names an heir at creation
  - Owner withdraws at will; every withdraw (even of 0) is proof of life
  - Once the owner has been inactive for the inactivity period, the heir
    claims ownership and names the next heir in the same call
  - Anyone may deposit through a grouped payment; plain payments to the
    app account are custodied too and counted at the next withdraw

Security:
  - Only owner can withdraw / update the heir
  - Only heir can claim, and only after the inactivity period (inclusive)
  - Owner != heir and heir != zero address at all times
  - Withdraw is latched against re-entry for its whole extent
  - Failed inner payment rejects the call; the AVM rolls everything back

Every Assert comment starts with the error name raised by the local state
machine in contracts/custody.py, so algod rejections can be matched to it.
"""

import json

from beaker import Application, GlobalStateValue
from algosdk.transaction import StateSchema
from pyteal import (
    Assert,
    Balance,
    Bytes,
    Concat,
    Expr,
    Global,
    If,
    InnerTxnBuilder,
    Int,
    Itob,
    Len,
    Log,
    MinBalance,
    Or,
    ScratchVar,
    Seq,
    TealType,
    Txn,
    TxnField,
    TxnType,
    abi,
)

from contracts.config import INACTIVITY_PERIOD
from contracts.errors import (
    InsufficientBalance,
    InvalidCall,
    InvalidSuccessor,
    OwnerStillActive,
    ReentrantCall,
    Unauthorized,
)
from contracts.events import Deposit, HeirChanged, OwnershipTransferred, Withdrawal, selector_of


ERR_OWNER_REQUIRED      = f"{Unauthorized.code}: owner required"
ERR_HEIR_REQUIRED       = f"{Unauthorized.code}: heir required"
ERR_NULL_HEIR           = f"{InvalidSuccessor.code}: heir must not be zero address"
ERR_HEIR_IS_OWNER       = f"{InvalidSuccessor.code}: heir must differ from owner"
ERR_HEIR_IS_CLAIMANT    = f"{InvalidSuccessor.code}: successor must differ from claimant"
ERR_INSUFFICIENT        = f"{InsufficientBalance.code}: amount exceeds balance"
ERR_STILL_ACTIVE        = f"{OwnerStillActive.code}: inactivity period not elapsed"
ERR_REENTRANT           = f"{ReentrantCall.code}: withdraw in progress"
ERR_WRONG_RECEIVER      = f"{InvalidCall.code}: payment must go to contract"
ERR_PAYLOAD_NO_VALUE    = f"{InvalidCall.code}: payload without value"

# owner, heir (bytes) + last_activity, balance, locked (uint64)
GLOBAL_SCHEMA = StateSchema(num_uints=3, num_byte_slices=2)
LOCAL_SCHEMA  = StateSchema(num_uints=0, num_byte_slices=0)

ARTIFACT_NAME = "AlgoHeir"


class CustodyState:
    owner         = GlobalStateValue(TealType.bytes,  key="owner",         descr="Current owner")
    heir          = GlobalStateValue(TealType.bytes,  key="heir",          descr="Designated successor")
    last_activity = GlobalStateValue(TealType.uint64, key="last_activity", descr="Last proof of life")
    balance       = GlobalStateValue(TealType.uint64, key="balance",       descr="Custodied microALGO")
    locked        = GlobalStateValue(TealType.uint64, key="locked",        descr="Withdraw re-entry latch")


def emit(event_type, *fields: Expr) -> Expr:
    """Log an ARC-28 style event: selector || fields."""
    return Log(Concat(Bytes(selector_of(event_type)), *fields))


def build_app(inactivity_period: int = INACTIVITY_PERIOD) -> Application:
    """Assemble the application. ``inactivity_period`` is in seconds."""
    app = Application(ARTIFACT_NAME, state=CustodyState())
    state = app.state

    def only(role_holder: Expr, comment: str) -> Expr:
        return Assert(Txn.sender() == role_holder, comment=comment)

    def valid_successor(candidate: Expr, forbidden: Expr, comment: str) -> Expr:
        return Seq(
            Assert(candidate != Global.zero_address(), comment=ERR_NULL_HEIR),
            Assert(candidate != forbidden,             comment=comment),
        )

    def deadline() -> Expr:
        return state.last_activity.get() + Int(inactivity_period)

    def spendable() -> Expr:
        """App account balance above its minimum balance."""
        account = Global.current_application_address()
        return If(
            Balance(account) > MinBalance(account),
            Balance(account) - MinBalance(account),
            Int(0),
        )

    def custodied() -> Expr:
        # Plain payments to the app account run no code; they are counted here.
        return If(spendable() > state.balance.get(), spendable(), state.balance.get())

    # ─────────────────────────────────────────────────────────────────────────
    # 1. CREATE
    # ─────────────────────────────────────────────────────────────────────────
    @app.create
    def create(heir: abi.Address) -> Expr:
        """Caller becomes owner; ``heir`` is the first successor."""
        return Seq(
            valid_successor(heir.get(), Txn.sender(), ERR_HEIR_IS_OWNER),
            state.owner.set(Txn.sender()),
            state.heir.set(heir.get()),
            state.last_activity.set(Global.latest_timestamp()),
            state.balance.set(Int(0)),
            state.locked.set(Int(0)),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # 2. DEPOSIT
    # ─────────────────────────────────────────────────────────────────────────
    @app.external
    def deposit(payment: abi.PaymentTransaction) -> Expr:
        """Anyone may fund the contract. The payment note is the call payload."""
        amount = payment.get().amount()
        return Seq(
            Assert(payment.get().receiver() == Global.current_application_address(),
                   comment=ERR_WRONG_RECEIVER),
            Assert(Or(amount > Int(0), Len(payment.get().note()) == Int(0)),
                   comment=ERR_PAYLOAD_NO_VALUE),
            If(amount > Int(0)).Then(Seq(
                state.balance.set(state.balance.get() + amount),
                emit(Deposit, payment.get().sender(), Itob(amount)),
            )),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # 3. UPDATE HEIR (owner only, does not count as activity)
    # ─────────────────────────────────────────────────────────────────────────
    @app.external
    def update_heir(new_heir: abi.Address) -> Expr:
        previous = ScratchVar(TealType.bytes)
        return Seq(
            only(state.owner.get(), ERR_OWNER_REQUIRED),
            valid_successor(new_heir.get(), state.owner.get(), ERR_HEIR_IS_OWNER),
            previous.store(state.heir.get()),
            state.heir.set(new_heir.get()),
            emit(HeirChanged, previous.load(), new_heir.get()),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # 4. WITHDRAW (owner only; amount 0 is the heartbeat)
    # ─────────────────────────────────────────────────────────────────────────
    @app.external
    def withdraw(amount: abi.Uint64) -> Expr:
        """Pays ``amount`` to the owner and resets the inactivity timer."""
        return Seq(
            only(state.owner.get(), ERR_OWNER_REQUIRED),
            Assert(state.locked.get() == Int(0),           comment=ERR_REENTRANT),
            state.locked.set(Int(1)),
            state.balance.set(custodied()),
            Assert(amount.get() <= state.balance.get(),    comment=ERR_INSUFFICIENT),
            state.last_activity.set(Global.latest_timestamp()),
            If(amount.get() > Int(0)).Then(Seq(
                state.balance.set(state.balance.get() - amount.get()),
                InnerTxnBuilder.Execute({
                    TxnField.type_enum: TxnType.Payment,
                    TxnField.receiver:  state.owner.get(),
                    TxnField.amount:    amount.get(),
                    TxnField.fee:       Int(0),
                }),
                emit(Withdrawal, state.owner.get(), Itob(amount.get())),
            )),
            state.locked.set(Int(0)),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # 5. CLAIM OWNERSHIP (heir only, after inactivity period)
    # ─────────────────────────────────────────────────────────────────────────
    @app.external
    def claim_ownership(new_heir: abi.Address) -> Expr:
        """Heir becomes owner and installs ``new_heir`` as the next successor."""
        previous_owner = ScratchVar(TealType.bytes)
        return Seq(
            only(state.heir.get(), ERR_HEIR_REQUIRED),
            Assert(Global.latest_timestamp() >= deadline(), comment=ERR_STILL_ACTIVE),
            valid_successor(new_heir.get(), Txn.sender(), ERR_HEIR_IS_CLAIMANT),
            previous_owner.store(state.owner.get()),
            state.owner.set(Txn.sender()),
            state.heir.set(new_heir.get()),
            state.last_activity.set(Global.latest_timestamp()),
            emit(OwnershipTransferred, previous_owner.load(), Txn.sender()),
            emit(HeirChanged, Txn.sender(), new_heir.get()),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # 6. READ-ONLY HELPERS
    # ─────────────────────────────────────────────────────────────────────────
    @app.external(read_only=True)
    def balance(*, output: abi.Uint64) -> Expr:
        """Custodied microALGO, including plain payments not yet reconciled."""
        return output.set(custodied())

    @app.external(read_only=True)
    def time_until_claimable(*, output: abi.Uint64) -> Expr:
        """Seconds until the heir may claim. Returns 0 once claimable."""
        now = Global.latest_timestamp()
        return If(
            now >= deadline(),
            output.set(Int(0)),
            output.set(deadline() - now),
        )

    @app.external(read_only=True)
    def can_claim(*, output: abi.Bool) -> Expr:
        return output.set(Global.latest_timestamp() >= deadline())

    return app


app = build_app()


def write_artifacts(out, application: Application = app):
    """Write approval/clear TEAL and the ABI contract JSON into ``out``."""
    spec = application.build()
    out.mkdir(parents=True, exist_ok=True)
    (out / f"{ARTIFACT_NAME}.approval.teal").write_text(spec.approval_program)
    (out / f"{ARTIFACT_NAME}.clear.teal").write_text(spec.clear_program)
    (out / f"{ARTIFACT_NAME}.abi.json").write_text(json.dumps(spec.contract.dictify(), indent=2))
    return spec


# ─────────────────────────────────────────────────────────────────────────────
# Entry point — compile to TEAL artifacts
# ─────────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import pathlib

    write_artifacts(pathlib.Path(__file__).parent / "artifacts")
    print("✅ Contract artifacts written to contracts/artifacts/")
