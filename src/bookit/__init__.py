"""Bank statement drafts, booking into postings and per-period posting aggregates."""

__version__ = "0.1.0"
