"""
Test helpers for the log aggregation tests.
"""

from .log_helpers import (
    BASE_TIME,
    FakeFetcher,
    make_entry,
    make_response
)

__all__ = [
    "BASE_TIME",
    "FakeFetcher",
    "make_entry",
    "make_response"
]
