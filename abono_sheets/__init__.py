"""Header discovery and row extraction for bank disbursement spreadsheets."""

__version__ = "0.1.0"
