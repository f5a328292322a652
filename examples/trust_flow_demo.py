# examples/trust_flow_demo.py
# Run with: python examples/trust_flow_demo.py
#
# Walks the demo flow: score an address, simulate the DAO vote, record the
# outcome, then verify the latest entry against the returned timeline.

import logging
from dataclasses import replace
from pathlib import Path

from trustledger import TrustLedger, verify_entry
from trustledger.integration.collaborators import TrustFlow
from trustledger.storage import JSONLStorage

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


if __name__ == "__main__":
    ledger = TrustLedger(storage=JSONLStorage(Path(".data") / "demo_ledger.jsonl"))
    flow = TrustFlow(ledger, seed=42)

    for address in ["0xabc", "0xdef", None]:
        result = flow.run(address)
        e = result.entry
        print(f"#{e.height} {e.address or '(no wallet)'} score={e.score} "
              f"approved={e.vote_result['approved']} persisted={result.persisted}")

    latest = result.entry
    check = verify_entry(latest, result.timeline[:-1])
    print(f"\nVerify latest: {check}")

    tampered = replace(latest, score=100)
    print(f"Verify tampered copy: {verify_entry(tampered, result.timeline[:-1])}")

    ledger.close()
