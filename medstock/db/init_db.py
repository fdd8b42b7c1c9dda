# medstock/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from medstock.db.base import Base
from medstock.db.session import engine as default_engine

# Import all models so metadata is complete
from medstock.models import (  # noqa: F401
    Product, Warehouse, InventoryLot, Department, InvNumberSeries,
    InventoryIssue, InventoryIssueDetail, InventoryIssueLotAllocation,
    Transaction, TransactionDetail)

logger = logging.getLogger(__name__)


def create_tables(bind: Engine = None) -> None:
    eng = bind or default_engine
    Base.metadata.create_all(bind=eng)
    logger.info("Inventory tables ensured on %s", eng.url.render_as_string(hide_password=True))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create medstock tables")
    parser.add_argument("--drop", action="store_true", help="drop all tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    try:
        if args.drop:
            Base.metadata.drop_all(bind=default_engine)
            logger.warning("All tables dropped")
        create_tables()
    except SQLAlchemyError:
        logger.exception("Table creation failed")
        raise


if __name__ == "__main__":
    main()
