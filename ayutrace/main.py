"""
AyuTrace - Main Entry Point

Walks the demo supply chain through the simulated ledger on a virtual
clock and prints the resulting chain and a consumer trace.

Run with: python -m ayutrace.main [--seed N] [--content-hashes] [--enforce]
"""

import argparse
import logging
from datetime import datetime

from .config import LedgerConfig, SubmissionPolicy
from .ledger import ManualClock, create_ledger
from .storage import DEMO_QR_CODE, create_storage
from .traceability import TraceabilityService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ayutrace",
        description="Ayurvedic herb traceability on a simulated ledger",
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--content-hashes", action="store_true",
                        help="use SHA-256 identifiers instead of random strings")
    parser.add_argument("--enforce", action="store_true",
                        help="reject payloads that fail contract validation")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def main(argv=None) -> int:
    """Main entry point for AyuTrace."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = LedgerConfig(
        submission_policy=SubmissionPolicy.ENFORCE if args.enforce else SubmissionPolicy.ADVISORY
    )
    clock = ManualClock(start=datetime.now().timestamp())
    ledger = create_ledger(
        config=config,
        clock=clock,
        hash_strategy="content" if args.content_hashes else "random",
        seed=args.seed,
    )
    storage = create_storage(ledger)
    tracer = TraceabilityService(storage)

    print("=" * 60)
    print("Welcome to AyuTrace")
    print("=" * 60)

    # Five more harvests push the ledger past its block threshold
    for i in range(5):
        storage.create_collection(
            collector_id="user-1", species_id="species-1",
            latitude=19.75 + i / 100, longitude=75.71, quantity=1.0 + i,
            quality_grade="good", collection_date=datetime.now(),
        )
    ledger.settle()
    ledger.assemble()

    ledger.print_chain()

    stats = ledger.get_stats()
    print("\nLedger stats:")
    for key, value in stats.to_dict().items():
        print(f"  {key}: {value}")

    trace = tracer.trace_product(DEMO_QR_CODE)
    if trace is not None:
        print(f"\nTrace for {DEMO_QR_CODE}: {trace.product.name}")
        for record in trace.records():
            status = tracer.ledger_status(record)
            print(f"  {type(record).__name__:<15} {record.id:<20} "
                  f"{status.value if status else 'unrecorded'}")
        print(tracer.product_qr(trace.product))

    ledger.validate_chain()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
