"""Gig ledger engine: multi-day grouping, tax-smart payments and period summaries."""

__version__ = "0.1.0"
