"""Pydantic schemas for API validation."""

from activity_ledger.schemas.common import MessageResponse, PaginatedResponse
from activity_ledger.schemas.statement import (
    BatchDeleteResponse,
    ExchangeRateResponse,
    ImportBatchResponse,
    ImportSummaryResponse,
    IncomeResponse,
    PortfolioSummaryResponse,
    PositionResponse,
    RecalculateResponse,
    TradeResponse,
)

__all__ = [
    "BatchDeleteResponse",
    "ExchangeRateResponse",
    "ImportBatchResponse",
    "ImportSummaryResponse",
    "IncomeResponse",
    "MessageResponse",
    "PaginatedResponse",
    "PortfolioSummaryResponse",
    "PositionResponse",
    "RecalculateResponse",
    "TradeResponse",
]
