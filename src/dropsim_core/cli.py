#!/usr/bin/env python3
"""
dropsim CLI entry point.

Usage examples:
  - Simulate 30 days of the demo catalog with a fixed seed:
      dropsim run --days 30 --seed 42

  - Persist the session to disk and give two products a marketing budget:
      dropsim run --days 10 --seed 7 --snapshot-dir data/sessions \\
          --budget DEMO1=60 --budget DEMO2=40

  - Serve the dashboard API:
      dropsim serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import math
import sys
from typing import List, Optional, Sequence

from dropsim_core.collaborators import RecordingReporter, StaticBudget, StaticCatalog, demo_catalog
from dropsim_core.config import Settings, get_settings
from dropsim_core.errors import SimulationError, StepRejected
from dropsim_core.logging import configure_logging, get_logger
from dropsim_core.models.market import BudgetAllocation
from dropsim_core.persistence import InMemoryStateStore, JsonFileStateStore
from dropsim_core.services.seasonality import CatalogSeasonalityProvider
from dropsim_core.stepper import DayStepper

LOG = get_logger("dropsim.cli")


def _parse_budget(values: Sequence[str]) -> List[BudgetAllocation]:
    allocations = []
    for raw in values:
        product_id, sep, amount = raw.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"budget must look like PRODUCT=AMOUNT, got {raw!r}")
        try:
            value = float(amount)
            if not math.isfinite(value):
                raise ValueError("amount must be a finite number")
            allocation = BudgetAllocation(
                product_id=product_id.strip(), allocated=value, available=value
            )
        except ValueError as e:
            # pydantic.ValidationError is a ValueError too
            raise argparse.ArgumentTypeError(f"invalid budget {raw!r}: {e}") from e
        allocations.append(allocation)
    return allocations


def _with_seed(settings: Settings, seed: Optional[int]) -> Settings:
    if seed is None:
        return settings
    simulation = settings.simulation.model_copy(update={"master_seed": seed})
    return settings.model_copy(update={"simulation": simulation})


async def run_simulation(args: argparse.Namespace, settings: Settings) -> int:
    settings = _with_seed(settings, args.seed)
    catalog = StaticCatalog(demo_catalog())
    if args.snapshot_dir:
        store = JsonFileStateStore(args.snapshot_dir, args.session_id)
    else:
        store = InMemoryStateStore()
    reporter = RecordingReporter()

    stepper = await DayStepper.load(
        args.session_id,
        catalog=catalog,
        store=store,
        settings=settings,
        budget=StaticBudget(_parse_budget(args.budget or [])),
        seasonality=CatalogSeasonalityProvider(catalog.snapshot),
        reporter=reporter,
    )
    start_day = stepper.session.day
    try:
        for _ in range(args.days):
            try:
                result = await stepper.step(override_inventory=args.override_inventory)
            except StepRejected as e:
                print(f"Stopped early: {e}")
                break
            event = f"  [{result.event.title}]" if result.event else ""
            print(
                f"Day {result.day:>4}  orders={result.state.orders:<5} "
                f"inventory={result.state.inventory:<4} profit={result.state.profit}{event}"
            )
    finally:
        await stepper.close()

    state = stepper.session.state
    print("")
    print(f"Session {args.session_id}: simulated {stepper.session.day - start_day} day(s)")
    print(f"  revenue   {state.revenue}")
    print(f"  expenses  {state.expenses}")
    print(f"  profit    {state.profit}")
    print(f"  orders    {state.orders}")
    print(f"  inventory {state.inventory}")
    print(f"  reports   {len(reporter.reports)}")
    if stepper.sync is not None:
        print(f"  sync      {stepper.sync_status.value}")
    return 0


def serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("dropsim_api.main:app", host=args.host, port=args.port, log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    description = (
        "dropsim CLI: run the dropshipping business simulation.\n\n"
        "Examples:\n"
        "  dropsim run --days 30 --seed 42\n"
        "  dropsim serve --port 8000\n"
    )
    parser = argparse.ArgumentParser(
        prog="dropsim",
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command")

    p_run = subparsers.add_parser("run", help="Simulate N days against the demo catalog.")
    p_run.add_argument("--days", type=int, required=True, help="Number of days to simulate.")
    p_run.add_argument("--seed", type=int, default=None, help="Master seed for reproducible runs.")
    p_run.add_argument(
        "--snapshot-dir",
        default=None,
        help="Directory for JSON session snapshots (in-memory when omitted).",
    )
    p_run.add_argument("--session-id", default="cli", help="Session identifier.")
    p_run.add_argument(
        "--budget",
        action="append",
        metavar="PRODUCT=AMOUNT",
        help="Marketing budget allocation for a demo product; repeatable.",
    )
    p_run.add_argument(
        "--override-inventory",
        action="store_true",
        help="Keep simulating after inventory runs out.",
    )

    p_serve = subparsers.add_parser("serve", help="Serve the dashboard API with uvicorn.")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    configure_logging(settings)

    if args.command == "run":
        if args.days < 0:
            parser.error("--days must be >= 0")
        try:
            return asyncio.run(run_simulation(args, settings))
        except (SimulationError, argparse.ArgumentTypeError) as e:
            LOG.error("%s", e)
            return 2
    if args.command == "serve":
        return serve_command(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
