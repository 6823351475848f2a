"""Gig ledger command line interface.

Provides operational tools for:
- Schema creation
- Period summaries (calendar, dashboard and report figures)
- Promoting past gigs to pending payment
- Lifetime booking counts

Usage:
    gig-ledger init-db
    gig-ledger summary --user-id 1 --period monthly --year 2025 --month 3
    gig-ledger summary --user-id 1 --period quarterly --year 2025 --quarter 2
    gig-ledger promote-statuses --user-id 1
    gig-ledger lifetime --user-id 1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from gig_ledger.calculators.periods import current_quarter
from gig_ledger.calculators.types import PeriodType
from gig_ledger.config import get_settings
from gig_ledger.database import create_schema, dispose_db, get_session, init_db
from gig_ledger.errors import GigLedgerError
from gig_ledger.services import BookingService, PeriodAggregationService


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


class GigLedgerCli:
    """Gig ledger Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="gig-ledger",
            description="Gig ledger operational tools",
        )
        parser.add_argument(
            "--database-url",
            help="Async SQLAlchemy URL (defaults to DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create missing tables")

        summary = subparsers.add_parser(
            "summary",
            help="Aggregate one user's bookings for a period",
        )
        summary.add_argument("--user-id", type=int, required=True)
        summary.add_argument(
            "--period",
            choices=[p.value for p in PeriodType],
            default=PeriodType.MONTHLY.value,
        )
        summary.add_argument("--year", type=int, required=True)
        summary.add_argument("--month", type=int, help="1-12, for monthly")
        summary.add_argument(
            "--quarter",
            type=int,
            help="1-4, for quarterly (defaults to the current IRS quarter)",
        )

        promote = subparsers.add_parser(
            "promote-statuses",
            help="Mark past upcoming gigs as pending payment",
        )
        promote.add_argument("--user-id", type=int, required=True)
        promote.add_argument(
            "--today",
            type=parse_date,
            help="Treat this date as today (ISO format)",
        )

        lifetime = subparsers.add_parser("lifetime", help="All-time booking count and earnings")
        lifetime.add_argument("--user-id", type=int, required=True)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        logging.basicConfig(
            level=get_settings().log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "summary": self._cmd_summary,
            "promote-statuses": self._cmd_promote_statuses,
            "lifetime": self._cmd_lifetime,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._dispatch(handler, parsed))

    async def _dispatch(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        init_db(args.database_url)
        try:
            return await handler(args)
        except GigLedgerError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create the schema."""
        await create_schema()
        _emit({"status": "ok"})
        return 0

    async def _cmd_summary(self, args: argparse.Namespace) -> int:
        """Print a period aggregate."""
        quarter = args.quarter
        if args.period == PeriodType.QUARTERLY.value and quarter is None:
            quarter = current_quarter(date.today())

        async with get_session() as session:
            service = PeriodAggregationService(session)
            aggregate = await service.aggregate_period(
                args.user_id,
                args.period,
                args.year,
                month=args.month,
                quarter=quarter,
            )
        _emit(aggregate.to_dict())
        return 0

    async def _cmd_promote_statuses(self, args: argparse.Namespace) -> int:
        """Promote past upcoming gigs."""
        async with get_session() as session:
            promoted = await BookingService(session).promote_past_gigs(args.user_id, args.today)
        _emit({"user_id": args.user_id, "promoted": promoted})
        return 0

    async def _cmd_lifetime(self, args: argparse.Namespace) -> int:
        """Print lifetime counters."""
        async with get_session() as session:
            summary = await PeriodAggregationService(session).lifetime_summary(args.user_id)
        _emit(
            {
                "user_id": summary.user_id,
                "booking_count": summary.booking_count,
                "total_earnings": str(summary.total_earnings),
            }
        )
        return 0


def main() -> int:
    """CLI entry point."""
    cli = GigLedgerCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
