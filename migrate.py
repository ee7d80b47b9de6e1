"""
Database maintenance script for the trading journal.

Creates the schema, makes sure a default account exists and rebuilds the
FIFO lot state and positions of every (account, stock) pair from the
transaction history.

Usage:
    python migrate.py                 # schema + default account + full rebuild
    python migrate.py --schema-only   # schema + default account
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from exceptions import InsufficientLotsError
from services.accounts import AccountService
from services.recalculation import RecalculationEngine
from services.unit_of_work import UnitOfWork

load_dotenv()

logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def rebuild_all() -> int:
    """Recalculate every pair in one unit of work; nothing changes if any pair fails."""
    with UnitOfWork() as uow:
        return RecalculationEngine.recalculate_all(uow)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Trading journal database maintenance")
    parser.add_argument("--schema-only", action="store_true", help="Skip the FIFO/position rebuild")
    args = parser.parse_args(argv)

    init_db()
    account = AccountService.ensure_default_account()
    logger.info(f"Default account: {account.id} '{account.name}'")

    if args.schema_only:
        return 0

    try:
        count = rebuild_all()
    except InsufficientLotsError as e:
        logger.error(f"Rebuild aborted, history is inconsistent: {e}")
        return 1

    logger.info(f"Rebuilt {count} account/stock pairs")
    return 0


if __name__ == "__main__":
    sys.exit(main())
