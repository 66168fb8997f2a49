"""Utility functions for rentbook."""

from rentbook.utils.date_parser import parse_timestamp
from rentbook.utils.amount_parser import parse_amount

__all__ = ["parse_timestamp", "parse_amount"]
