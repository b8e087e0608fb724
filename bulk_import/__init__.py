"""Bulk label import: spreadsheet -> shipping label orders."""

__version__ = "0.1.0"
