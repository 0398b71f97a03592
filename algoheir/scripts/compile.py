"""
compile.py — Compile AlgoHeir contract to TEAL artifacts
=========================================================
Usage:
    python scripts/compile.py

Outputs to contracts/artifacts/:
    AlgoHeir.approval.teal
    AlgoHeir.clear.teal
    AlgoHeir.abi.json
"""

import sys, pathlib

sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))
from contracts.algoheir import app, write_artifacts

out = pathlib.Path(__file__).parent.parent / "contracts" / "artifacts"

spec = write_artifacts(out, app)

print("✅ Artifacts written to contracts/artifacts/")
print(f"   Approval TEAL : {len(spec.approval_program.splitlines())} lines")
print(f"   Methods       : {[m.name for m in spec.contract.methods]}")
