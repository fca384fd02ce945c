"""Wall-clock access for eventcal.

All engine dates and times are local wall-clock values with no zone
conversion, so "now" is a naive datetime.
"""

from __future__ import annotations

import datetime
import logging
import os

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "EVENTCAL_TEST_TIME"


def now_local() -> datetime.datetime:
    """Return the current local wall-clock time as a naive datetime.

    Can be overridden for testing via the EVENTCAL_TEST_TIME environment
    variable (ISO 8601, e.g. "2024-05-01T09:30:00"). A zone offset in the
    override is discarded: the wall-clock reading is used as-is.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            return date_parser.isoparse(test_time).replace(tzinfo=None)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.datetime.now()


def today() -> datetime.date:
    """Return the current local calendar date."""
    return now_local().date()
