"""Activity ledger - brokerage activity statement ingestion and position reconstruction."""

__version__ = "0.1.0"
