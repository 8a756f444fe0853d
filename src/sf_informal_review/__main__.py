import argparse
import asyncio
import logging
import sys

from .case import CaseStateStore
from .config import get_config
from .errors import AppealError
from .exporters import export_packet_files
from .logging_utils import configure_logging
from .models import Tone
from .records.fixture import FixtureRecordSource
from .records.soda import SodaRecordSource
from .resolver import ResolveStatus
from .service import AppealService

logger = logging.getLogger("sfir.cli")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="sf_informal_review",
        description="Build an SF Prop 8 informal review packet from assessor roll data",
    )

    parser.add_argument(
        "--address",
        default=None,
        help="Street address of the subject property (e.g. '1625 Pacific Ave')",
    )
    parser.add_argument(
        "--block",
        default=None,
        help="Assessor block number (paired with --lot)",
    )
    parser.add_argument(
        "--lot",
        default=None,
        help="Assessor lot number (paired with --block)",
    )
    parser.add_argument(
        "--reference-value",
        type=float,
        default=None,
        help="Your estimate of market value as of January 1",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--fixture",
        default=None,
        help="JSON file of assessor rows to use instead of the live feed",
    )
    source.add_argument(
        "--live",
        action="store_true",
        help="Query the live SF OpenData assessor roll (network required)",
    )

    parser.add_argument(
        "--radius",
        type=float,
        default=0.5,
        help="Initial comparable search radius in miles",
    )
    parser.add_argument(
        "--months-back",
        type=int,
        default=24,
        help="Only consider sales within this many months",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=15,
        help="Maximum number of comparables to fetch",
    )
    parser.add_argument(
        "--tone",
        choices=[t.value for t in Tone],
        default=Tone.NEUTRAL.value,
        help="Narrative tone",
    )
    parser.add_argument(
        "--declared-value",
        type=float,
        default=None,
        help="Requested value (defaults to the average comparable sale price)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the packet to <path>.md and the comparables to <path>.csv",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    return parser


async def run(args) -> int:
    config = get_config()
    if args.fixture:
        source = FixtureRecordSource(args.fixture)
    else:
        source = SodaRecordSource.from_config(config)
    service = AppealService(source, config=config)
    store = CaseStateStore()

    try:
        resolved = await service.resolve_property(
            store,
            address=args.address,
            block=args.block,
            lot=args.lot,
            reference_value=args.reference_value,
        )
        if resolved["status"] != ResolveStatus.RESOLVED:
            print(resolved["text"])
            return 1
        print(resolved["text"], file=sys.stderr)

        found = await service.find_comparables(
            store, radius=args.radius, months_back=args.months_back, limit=args.limit
        )
        print(found["text"], file=sys.stderr)

        await service.draft_argument(store, tone=args.tone, declared_value=args.declared_value)
        packet = await service.build_packet(store)
    finally:
        await source.aclose()

    print(packet["markdown"])
    if args.output:
        md_path, csv_path = export_packet_files(
            packet["markdown"], store.snapshot().included, args.output
        )
        print(f"Wrote {md_path} and {csv_path}", file=sys.stderr)
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.address and not (args.block and args.lot):
        parser.error("provide --address or both --block and --lot")
    if bool(args.block) != bool(args.lot):
        parser.error("--block and --lot must be given together")
    if args.radius <= 0 or args.limit <= 0 or args.months_back < 0:
        parser.error("--radius and --limit must be positive, --months-back non-negative")

    config = get_config()
    configure_logging(args.log_level or config.log_level, json_lines=args.log_json or config.log_json)

    try:
        return asyncio.run(run(args))
    except AppealError as exc:
        logger.debug("pipeline stopped: %s", exc.kind)
        print(f"Error ({exc.kind}): {exc.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        # Unwritable --output path or malformed --fixture file.
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
