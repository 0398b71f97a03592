"""
deploy.py — AlgoHeir contract deployment script
================================================
Usage:
    python scripts/compile.py
    python scripts/deploy.py

Requirements:
    pip install -e .
    ALGO_MNEMONIC and HEIR_ADDRESS env vars must be set (or use .env file)

The deployer becomes the owner. After deploy, put the printed APP_ID in .env
so scripts/heartbeat.py can find the application.
"""

import sys, json, base64, pathlib, math

sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

from algosdk import abi, account, encoding, logic, mnemonic
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    AtomicTransactionComposer,
)
from algosdk.transaction import OnComplete, PaymentTxn, wait_for_confirmation

from contracts.algoheir import ARTIFACT_NAME, GLOBAL_SCHEMA, LOCAL_SCHEMA
from contracts.config import (
    APP_MIN_BALANCE_MICROALGOS,
    ConfigError,
    load_settings,
    make_algod_client,
    retry_on_429,
)

ARTIFACTS = pathlib.Path(__file__).parent.parent / "contracts" / "artifacts"


def compile_program(algod, source: str) -> bytes:
    """Compile TEAL source and return raw bytes (rate-limit safe)."""
    response = retry_on_429(algod.compile, source)
    return base64.b64decode(response["result"])


def main():
    try:
        settings = load_settings()
    except ConfigError as exc:
        sys.exit(f"❌  {exc}")

    if not settings.mnemonic:
        sys.exit(
            "❌  ALGO_MNEMONIC environment variable not set.\n"
            "    Export your 25-word mnemonic:\n"
            "    export ALGO_MNEMONIC='word1 word2 ... word25'"
        )
    heir = settings.heir_address
    if not heir or not encoding.is_valid_address(heir):
        sys.exit("❌  HEIR_ADDRESS must be set to a valid Algorand address.")

    private_key = mnemonic.to_private_key(settings.mnemonic)
    address     = account.address_from_private_key(private_key)
    if heir == address:
        sys.exit("❌  HEIR_ADDRESS must differ from the deployer (owner) address.")

    approval_teal = (ARTIFACTS / f"{ARTIFACT_NAME}.approval.teal").read_text()
    clear_teal    = (ARTIFACTS / f"{ARTIFACT_NAME}.clear.teal").read_text()
    contract      = abi.Contract.from_json((ARTIFACTS / f"{ARTIFACT_NAME}.abi.json").read_text())

    algod = make_algod_client(settings)

    print(f"\n🚀 Deploying AlgoHeir to {settings.network.upper()}...")
    print(f"   Owner    : {address}")
    print(f"   Heir     : {heir}")

    try:
        info = retry_on_429(algod.account_info, address)
    except Exception as e:
        sys.exit(f"❌  Cannot reach Algorand node: {e}")
    balance_algo = info.get("amount", 0) / 1_000_000
    print(f"   Balance  : {balance_algo:.4f} ALGO")
    if balance_algo < 0.3:
        sys.exit(
            "\n❌  Insufficient balance. Need at least 0.3 ALGO.\n"
            f"   Fund this address: {address}\n"
            "   Testnet dispenser: https://dispenser.testnet.aws.algodev.network\n"
        )

    print("   Compiling approval program...")
    approval_bytes = compile_program(algod, approval_teal)
    print("   Compiling clear program...")
    clear_bytes    = compile_program(algod, clear_teal)

    # Extra program pages: each page = 2048 bytes (max 3 extra pages)
    extra_pages = max(0, math.ceil(len(approval_bytes) / 2048) - 1)

    signer = AccountTransactionSigner(private_key)
    sp = retry_on_429(algod.suggested_params)

    atc = AtomicTransactionComposer()
    atc.add_method_call(
        app_id=0,
        method=contract.get_method_by_name("create"),
        sender=address,
        sp=sp,
        signer=signer,
        method_args=[heir],
        on_complete=OnComplete.NoOpOC,
        approval_program=approval_bytes,
        clear_program=clear_bytes,
        global_schema=GLOBAL_SCHEMA,
        local_schema=LOCAL_SCHEMA,
        extra_pages=extra_pages,
    )
    result = atc.execute(algod, 8)
    txid = result.tx_ids[0]

    app_id   = retry_on_429(algod.pending_transaction_info, txid)["application-index"]
    app_addr = logic.get_application_address(app_id)

    # The application account needs its minimum balance before it can send
    # inner payments on withdraw.
    print("   Funding application account...")
    fund = PaymentTxn(address, retry_on_429(algod.suggested_params), app_addr, APP_MIN_BALANCE_MICROALGOS)
    fund_txid = retry_on_429(algod.send_transaction, fund.sign(private_key))
    wait_for_confirmation(algod, fund_txid, wait_rounds=8)

    print("\n" + "═" * 60)
    print("  ✅ Contract deployed!")
    print(f"  📌 App ID       : {app_id}")
    print(f"  📦 App Address  : {app_addr}")
    print(f"  🔗 Tx ID        : {txid}")
    print("═" * 60)
    print("\nNext steps:")
    print(f"  1. Add APP_ID={app_id} to .env")
    print("  2. Run scripts/heartbeat.py at least once every 30 days\n")

    (ARTIFACTS / "deployed.json").write_text(json.dumps({
        "network": settings.network,
        "app_id": app_id,
        "app_address": app_addr,
        "deploy_txid": txid,
        "owner": address,
        "heir": heir,
    }, indent=2))
    print("  Saved to contracts/artifacts/deployed.json")

    return app_id, app_addr


if __name__ == "__main__":
    main()
