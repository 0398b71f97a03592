"""
heartbeat.py — Owner proof of life
===================================
Usage:
    python scripts/heartbeat.py

Sends withdraw(0) as the owner, which resets the inactivity timer without
moving funds, then prints how long the heir must now wait.

Requires ALGO_MNEMONIC (owner) and APP_ID in the environment or .env file.
"""

import sys, pathlib

sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

from algosdk import abi, account, mnemonic
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    AtomicTransactionComposer,
)

from contracts.algoheir import ARTIFACT_NAME
from contracts.config import ConfigError, load_settings, make_algod_client, retry_on_429

ARTIFACTS = pathlib.Path(__file__).parent.parent / "contracts" / "artifacts"


def format_duration(seconds: int) -> str:
    days, rest = divmod(seconds, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes = rest // 60
    return f"{days}d {hours}h {minutes}m"


def main():
    try:
        settings = load_settings()
    except ConfigError as exc:
        sys.exit(f"❌  {exc}")
    if not settings.mnemonic or settings.app_id is None:
        sys.exit("❌  ALGO_MNEMONIC and APP_ID must be set.")

    private_key = mnemonic.to_private_key(settings.mnemonic)
    address     = account.address_from_private_key(private_key)
    contract    = abi.Contract.from_json((ARTIFACTS / f"{ARTIFACT_NAME}.abi.json").read_text())
    signer      = AccountTransactionSigner(private_key)
    algod       = make_algod_client(settings)

    print(f"\n💓 Sending heartbeat to app {settings.app_id} as {address}...")

    sp = retry_on_429(algod.suggested_params)
    atc = AtomicTransactionComposer()
    atc.add_method_call(
        app_id=settings.app_id,
        method=contract.get_method_by_name("withdraw"),
        sender=address,
        sp=sp,
        signer=signer,
        method_args=[0],
    )
    atc.add_method_call(
        app_id=settings.app_id,
        method=contract.get_method_by_name("time_until_claimable"),
        sender=address,
        sp=sp,
        signer=signer,
    )
    result = atc.execute(algod, 8)
    remaining = result.abi_results[1].return_value

    print(f"   ✅ Confirmed in round {result.confirmed_round}")
    print(f"   ⏳ Heir can claim in {format_duration(remaining)}\n")
    return remaining


if __name__ == "__main__":
    main()
