"""Services layer - statement pipeline, persistence and valuation.

- statement_parser / record_normalizer: activity statement ingestion
- fx_rate_resolver / position_engine: pure reconstruction logic
- repositories/: data access
- statement_import_service: import, delete and re-fold orchestration
- valuation_service / quote_provider: market valuation of open positions
"""
