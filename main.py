#!/usr/bin/env python3
"""
Dhaka Dispatch scheduler.
Runs the news-to-graphic batch at the top of every hour; RUN_MODE=once runs a
single batch in the foreground and exits.
"""

import logging
import os
import signal
import sys
import time

import schedule
from dotenv import load_dotenv

from dhakadispatch.config import Config
from dhakadispatch.logsink import configure_logging, install_webhook_sink
from dhakadispatch.pipeline.batch import DispatchPipeline, dispatch_batch_async
from dhakadispatch.pipeline.lock import SchedulerLock

# Load environment variables from .env file
load_dotenv()

LOCK_FILE = 'state/dispatch.lock'

configure_logging(log_file='dispatch.log')
logger = logging.getLogger(__name__)


class Scheduler:
    """Hourly timer trigger with graceful shutdown"""

    def __init__(self, pipeline: DispatchPipeline, at_minute: str = ':00'):
        self.pipeline = pipeline
        self.at_minute = at_minute
        self.shutdown_requested = False

    def _setup_signal_handlers(self):
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self.shutdown_requested = True

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def trigger(self):
        logger.info("Scheduled trigger fired")
        dispatch_batch_async(self.pipeline)

    def run_forever(self, poll_seconds: int = 30):
        self._setup_signal_handlers()
        schedule.every().hour.at(self.at_minute).do(self.trigger)
        logger.info(f"Next run scheduled at {schedule.next_run()}")
        while not self.shutdown_requested:
            schedule.run_pending()
            time.sleep(poll_seconds)
        schedule.clear()
        logger.info("Graceful shutdown completed")


def main():
    try:
        try:
            config = Config.from_env()
        except ValueError as e:
            logger.error(f"Configuration error:\n{e}")
            sys.exit(1)

        if config.log_sink_url:
            install_webhook_sink(config.log_sink_url, timeout=config.request_timeout)

        pipeline = DispatchPipeline.from_config(config)

        if os.getenv('RUN_MODE', '').strip().lower() == 'once':
            report = pipeline.run_batch()
            sys.exit(1 if report.failed and not report.published else 0)

        scheduler_lock = SchedulerLock(LOCK_FILE)
        if not scheduler_lock.acquire():
            logger.error("Another instance of the scheduler is already running. Exiting.")
            sys.exit(1)
        try:
            logger.info(f"Dhaka Dispatch scheduler started (hourly at {config.schedule_minute})")
            Scheduler(pipeline, at_minute=config.schedule_minute).run_forever()
        finally:
            scheduler_lock.release()

    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
