"""
Background price monitoring script using APScheduler.
Runs periodically to evaluate price alerts and send email notifications.

Usage:
    python monitor.py          # run on the configured weekday schedule
    python monitor.py --once   # check once and exit
"""

import argparse
import logging
import time

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from services.alerts import AlertService

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def check_price_alerts():
    """
    Job function: evaluate every active alert.
    Called by the scheduler at configured intervals.
    """
    logger.info("=" * 60)
    logger.info("Starting price alert check...")
    triggered = AlertService.check_alerts()
    logger.info(f"Price alert check finished: {len(triggered)} triggered")
    logger.info("=" * 60)
    return triggered


def start_monitor_scheduler() -> BackgroundScheduler:
    """
    Start the background scheduler for price monitoring.
    Runs hourly on the configured days and hours.
    """
    settings = get_settings()
    scheduler = BackgroundScheduler()

    scheduler.add_job(
        check_price_alerts,
        trigger=CronTrigger(day_of_week=settings.alert_check_days, hour=settings.alert_check_hours, minute='0'),
        id='price_alert_check',
        name='Price Alert Check',
        replace_existing=True
    )

    logger.info("Running initial price check on startup...")
    check_price_alerts()

    scheduler.start()
    logger.info(
        f"Price monitor scheduler started ({settings.alert_check_days}, hours {settings.alert_check_hours})."
    )
    return scheduler


def main():
    parser = argparse.ArgumentParser(description="Trading journal price alert monitor")
    parser.add_argument("--once", action="store_true", help="Run a single check and exit")
    args = parser.parse_args()

    init_db()

    if args.once:
        logger.info("Running one-time price alert check...")
        check_price_alerts()
        return

    scheduler = start_monitor_scheduler()
    try:
        # Keep the script running
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down price monitor...")
        scheduler.shutdown()
        logger.info("Price monitor stopped.")


if __name__ == "__main__":
    main()
