"""Schemas for statement imports, stored records and reconstructed positions."""

import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ImportSummaryResponse(BaseModel):
    """Result of uploading one statement."""

    model_config = ConfigDict(from_attributes=True)

    batch_id: int
    filename: str
    statement_start: datetime.date | None = None
    statement_end: datetime.date | None = None
    trades_inserted: int
    trades_skipped: int = Field(..., description="Trades already stored from an earlier import")
    income_inserted: int
    income_skipped: int
    forex_inserted: int
    forex_skipped: int
    open_positions: int
    errors: list[str] = Field(default_factory=list, description="Rows skipped as unreadable")
    warnings: list[str] = Field(
        default_factory=list, description="Clamped sells and default FX rates used"
    )


class ImportBatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    file_hash: str | None = None
    statement_start: datetime.date | None = None
    statement_end: datetime.date | None = None
    trade_count: int
    income_count: int
    trades_inserted: int
    trades_skipped: int
    income_inserted: int
    income_skipped: int
    errors: list[str] | None = None
    created_at: datetime.datetime


class BatchDeleteResponse(BaseModel):
    message: str
    trades_deleted: int
    income_deleted: int
    forex_deleted: int
    open_positions: int


class TradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    batch_id: int
    trade_date: datetime.date
    settle_date: datetime.date | None = None
    symbol: str
    description: str | None = None
    asset_class: str | None = None
    action: str = Field(..., description="BUY or SELL")
    quantity: Decimal
    price: Decimal
    currency: str
    fx_rate: Decimal | None = None
    proceeds: Decimal | None = None
    cost_basis: Decimal | None = None
    realized_pnl: Decimal | None = None
    commission: Decimal
    fees: Decimal


class IncomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    batch_id: int
    date: datetime.date = Field(..., validation_alias=AliasChoices("income_date", "date"))
    symbol: str
    description: str | None = None
    income_type: str
    amount: Decimal
    currency: str


class ExchangeRateResponse(BaseModel):
    """Resolved rate-to-base for a currency on a day."""

    model_config = ConfigDict(from_attributes=True)

    currency: str
    base_currency: str
    date: datetime.date = Field(..., validation_alias=AliasChoices("rate_date", "date"))
    rate: Decimal
    provenance: str = Field(..., description="'observed' or 'default'")
    sample_count: int


class PositionResponse(BaseModel):
    """Reconstructed position with live market values where available."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    currency: str
    status: str
    quantity: float
    avg_cost: float | None = None
    total_cost: float
    realized_pnl: float

    # Historical base-currency values
    total_cost_base: float
    realized_pnl_base: float
    avg_fx_rate: float | None = Field(None, description="Cost-weighted rate at purchase")
    uses_estimated_fx: bool = Field(
        False, description="True if any trade was converted at a default rate"
    )

    # Live values
    current_price: float | None = None
    market_value: float | None = None
    unrealized_pnl: float | None = None
    unrealized_pnl_pct: float | None = None
    day_change: float | None = None
    fx_rate: float | None = Field(None, description="Latest resolved rate-to-base")
    market_value_base: float | None = None
    unrealized_pnl_base: float | None = None


class PortfolioSummaryResponse(BaseModel):
    """Base-currency totals over open positions."""

    model_config = ConfigDict(from_attributes=True)

    base_currency: str
    total_cost: float
    total_market_value: float | None = None
    total_unrealized_pnl: float | None = None
    total_unrealized_pnl_pct: float | None = None
    total_realized_pnl: float
    day_pnl: float | None = None
    positions: list[PositionResponse]


class RecalculateResponse(BaseModel):
    positions: int
    open_positions: int
    total_realized_pnl_base: float
    warnings: list[str] = Field(default_factory=list)
