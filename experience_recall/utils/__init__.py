"""
Utilities Module

Provides shared logging setup and timestamp helpers.
"""

import logging

from .dates import parse_timestamp, to_utc, utc_now


def setup_logging(level=logging.INFO):
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


__all__ = ['setup_logging', 'parse_timestamp', 'to_utc', 'utc_now']
