#!/usr/bin/env python3
"""
Populate the database with sample marketplace data.

Creates two vendors ("Elegant Beauty Salon", approved, and "Glamour
Studio", pending), four services, a beautician, a customer with an
address and a couple of bookings.  Accounts are matched by email, so
running the script again changes nothing.  All sample accounts use the
password ``Password@123``.

Usage:
    python seed_data.py
"""

import logging

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.core.logging_config import setup_logging
from bonzenga_api.app.services.seed_service import SAMPLE_PASSWORD, seed_sample_data


logger = logging.getLogger("seed_data")


def main() -> None:
    setup_logging(settings.log_level)
    summary = seed_sample_data()
    logger.info(
        "Seeded %s vendor(s); %s new booking(s). Sample password: %s",
        summary["vendors"],
        summary["bookings_added"],
        SAMPLE_PASSWORD,
    )


if __name__ == "__main__":
    main()
