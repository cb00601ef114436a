"""Sheet Mirror: one-way sync of primary-store records into Google Sheets."""

__version__ = "0.1.0"
