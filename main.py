"""
Ensemble — Entry Point.

`python main.py` opens (or creates) the household database at
DATABASE_PATH and prints a short summary of what it holds.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from ensemble.config import settings
from ensemble.data.db import Database, HouseholdDB

logger = logging.getLogger("ensemble")


def main() -> None:
    db = Database(settings.DATABASE_PATH)
    try:
        household_db = HouseholdDB(db)
        households = household_db.list_households()
        logger.info("Database ready at %s (%d households)", db.path, len(households))
        for household in households:
            members = household_db.list_members(household.id)
            logger.info("  %s: %d members", household.name, len(members))
    finally:
        db.close()


if __name__ == "__main__":
    main()
