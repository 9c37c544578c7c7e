"""
Scheduled entry point for the stats engine, meant to run hourly from cron.

    python scripts/run_update_cycle.py             # one update cycle
    python scripts/run_update_cycle.py --archive   # save this month's result first
    python scripts/run_update_cycle.py --reset     # then start a new period

With no flags the month-end steps run automatically after the update on the
last day of the month at 23:00 UTC, subject to MONTHLY_RESULT_ENABLED and
MONTHLY_RESET_ENABLED. The archive always runs before the reset.
"""

import argparse
import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tcapi.config import settings
from tcapi.database.session import get_db_context
from tcapi.logging_config import setup_logging
from tcapi.services.monthly_rollover_service import MonthlyRolloverService
from tcapi.services.tc_stats_service import TcStatsService
from tcapi.utils.date_utils import is_last_day_of_month, utc_now

logger = logging.getLogger("tcapi.scripts.run_update_cycle")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a TC stats update cycle")
    parser.add_argument("--archive", action="store_true", help="save the month's result after updating")
    parser.add_argument("--reset", action="store_true", help="start a new competition period after updating")
    parser.add_argument("--skip-update", action="store_true", help="do not run the update cycle")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(settings.LOG_LEVEL, settings.STATS_LOG_FILE)

    now = utc_now()
    month_end = is_last_day_of_month(now.date()) and now.hour == 23
    archive = args.archive or (month_end and settings.MONTHLY_RESULT_ENABLED)
    reset = args.reset or (month_end and settings.MONTHLY_RESET_ENABLED)

    with get_db_context() as db:
        if not args.skip_update:
            result = TcStatsService(db, settings).run_update_cycle()
            logger.info(
                f"Update cycle: {result.applied_count} applied, {result.skipped_count} skipped"
            )

        rollover = MonthlyRolloverService(db, settings)
        if archive:
            saved = rollover.archive_period(now.year, now.month)
            logger.info(f"Saved result for {saved.year}/{saved.month:02d}")
        if reset:
            reset_result = rollover.reset_period()
            logger.info(
                f"Period reset: {reset_result.users_reset} reset, {reset_result.users_skipped} skipped"
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
