#!/usr/bin/env python
# appointment_engine/commands/slots.py
"""
Slot management commands for the appointment engine.

Usage:
    python -m appointment_engine.commands.slots init-db             # Create tables
    python -m appointment_engine.commands.slots seed                # Seed every active interviewer
    python -m appointment_engine.commands.slots seed --days 7       # Seed the next 7 days
"""

import argparse
from datetime import date
import logging
import sys
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, settings
from ..core.exceptions import DomainException
from ..database import create_db_engine, create_session_factory, get_db, init_db
from ..repositories import RepositoryFactory
from ..services.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class SlotsCommand:
    """Slot management command handler."""

    def __init__(self, database_url: Optional[str] = None, config: Optional[Settings] = None):
        self.config = config or settings
        self.database_url = database_url or self.config.database_url
        self.engine = create_db_engine(self.database_url, echo=self.config.database_echo)
        self.session_factory = create_session_factory(self.engine)

    def init_db(self) -> Dict[str, Any]:
        init_db(self.engine)
        return {"status": "success", "database_url": self.database_url}

    def seed(self, days: Optional[int] = None, start_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Expand every active interviewer's weekly availability into slots.

        Returns:
            dict: Per-interviewer created/skipped counts
        """
        horizon = days or self.config.seed_horizon_days
        logger.info(f"Seeding slots for the next {horizon} days")
        results: List[Dict[str, Any]] = []

        for db in get_db(self.session_factory, commit=False):
            results = self._seed_all(db, horizon, start_date)

        return {
            "status": "success",
            "days": horizon,
            "interviewers": results,
            "created": sum(r["created"] for r in results),
            "skipped": sum(r["skipped"] for r in results),
        }

    def _seed_all(
        self, db: Session, horizon: int, start_date: Optional[date]
    ) -> List[Dict[str, Any]]:
        generator = SlotGenerator(db, config=self.config)
        interviewers = RepositoryFactory.create_interviewer_repository(db).find_active()
        results = []
        for interviewer in interviewers:
            try:
                batch = generator.seed_from_availability(
                    interviewer.id, start_date=start_date, days=horizon
                )
            except DomainException as e:
                logger.error(f"Seeding failed for interviewer {interviewer.id}: {e.message}")
                results.append(
                    {
                        "interviewer_id": interviewer.id,
                        "name": interviewer.name,
                        "created": 0,
                        "skipped": 0,
                        "error": e.message,
                    }
                )
                continue
            results.append(
                {
                    "interviewer_id": interviewer.id,
                    "name": interviewer.name,
                    "created": batch.created_count,
                    "skipped": len(batch.skipped),
                }
            )
        return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Appointment slot management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m appointment_engine.commands.slots init-db
  python -m appointment_engine.commands.slots seed --days 7
  python -m appointment_engine.commands.slots --database-url sqlite:///./dev.db seed
        """,
    )
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: settings)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.add_parser("init-db", help="Create the slot and booking tables")

    seed_parser = subparsers.add_parser("seed", help="Seed slots from weekly availability")
    seed_parser.add_argument(
        "--days",
        type=int,
        default=None,
        help=f"Days ahead to seed (default: {settings.seed_horizon_days})",
    )
    seed_parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="First day to seed, YYYY-MM-DD (default: today)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the slots command."""
    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    cmd = SlotsCommand(database_url=args.database_url)

    if args.command == "init-db":
        result = cmd.init_db()
        print(f"Tables created ({result['database_url']})")
        return 0

    result = cmd.seed(days=args.days, start_date=args.start_date)
    print(f"\nSeeded slots for the next {result['days']} days")
    print("=" * 50)
    if not result["interviewers"]:
        print("No active interviewers found.")
    for row in result["interviewers"]:
        line = f"  {row['name']}: {row['created']} created, {row['skipped']} skipped"
        if "error" in row:
            line += f" (error: {row['error']})"
        print(line)
    print(f"Total: {result['created']} created, {result['skipped']} skipped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
