#!/usr/bin/env python
import sys
import time
import logging
import argparse
import threading
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from price_tracker.config import Settings
from price_tracker.logging_config import setup_logging
from price_tracker.models.schemas import ProductDetail
from price_tracker.tasks.check_prices import PriceChecker, build_checker

logger = logging.getLogger('scheduler')

JOB_ID = 'price_check_job'


class PriceScheduler:
    """Runs the price sweep on a fixed interval in a background thread.

    Overlapping runs are skipped rather than queued, and ``stop`` cancels a
    sweep that is still in flight before shutting the scheduler down.
    """

    def __init__(self, checker: PriceChecker, interval_hours: float = 1.0, scheduler=None):
        self.checker = checker
        self.interval_hours = interval_hours
        self.scheduler = scheduler or BackgroundScheduler()
        self.cancel_event = threading.Event()

    def run_sweep(self) -> List[ProductDetail]:
        logger.info("Running scheduled price check")
        try:
            return self.checker.check_all_products(cancel_event=self.cancel_event)
        except Exception as e:
            # Listing products failed; the next interval tries again
            logger.error(f"Error updating prices: {e}", exc_info=True)
            return []

    def start(self) -> None:
        self.cancel_event.clear()
        self.scheduler.add_job(
            self.run_sweep,
            IntervalTrigger(hours=self.interval_hours),
            id=JOB_ID,
            name='Check prices and update database',
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started with {self.interval_hours} hour interval")

    def stop(self, wait: bool = True) -> None:
        logger.info("Stopping scheduler")
        self.cancel_event.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)


def start_scheduler(hours_interval: Optional[float] = None, run_now: bool = False) -> bool:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    checker = build_checker(settings)
    scheduler = PriceScheduler(checker, interval_hours=hours_interval or settings.scrape_interval_hours)

    try:
        scheduler.start()
        if run_now:
            scheduler.run_sweep()
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        scheduler.stop()
        checker.db.close()

    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Start the price tracker scheduler")
    parser.add_argument("--interval", type=float, help="Interval in hours between price checks")
    parser.add_argument("--run-now", action="store_true", help="Run one sweep immediately on start")

    args = parser.parse_args(argv)

    return 0 if start_scheduler(hours_interval=args.interval, run_now=args.run_now) else 1


if __name__ == "__main__":
    sys.exit(main())
