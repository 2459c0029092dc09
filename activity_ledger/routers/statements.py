"""Activity statement API router.

Provides endpoints for:
- Uploading activity statements and listing/deleting import batches
- Browsing stored trades, income and resolved FX rates
- Reconstructed positions with live valuation
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from activity_ledger.database import get_db
from activity_ledger.schemas import (
    BatchDeleteResponse,
    ExchangeRateResponse,
    ImportBatchResponse,
    ImportSummaryResponse,
    IncomeResponse,
    MessageResponse,
    PaginatedResponse,
    PortfolioSummaryResponse,
    RecalculateResponse,
    TradeResponse,
)
from activity_ledger.services.errors import FatalParseError
from activity_ledger.services.quote_provider import QuoteProvider, YFinanceQuoteProvider
from activity_ledger.services.repositories import (
    ExchangeRateRepository,
    ImportBatchRepository,
    IncomeRepository,
    NotFoundError,
    PositionRepository,
    TradeRepository,
)
from activity_ledger.services.statement_import_service import StatementImportService
from activity_ledger.services.valuation_service import PortfolioValuationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/statements", tags=["statements"])

# Latest imports shown on the imports page
RECENT_IMPORTS_LIMIT = 50


def get_quote_provider() -> QuoteProvider:
    """Quote provider dependency (overridden in tests)."""
    return YFinanceQuoteProvider()


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/upload", response_model=ImportSummaryResponse)
async def upload_statement(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
) -> ImportSummaryResponse:
    """Upload an activity statement CSV.

    Trades, income and currency conversions already stored by an earlier
    import are skipped, so uploading the same file twice is harmless.

    Raises:
        400: Empty or unreadable file
    """
    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file uploaded",
        )

    filename = file.filename or "statement.csv"
    try:
        summary = StatementImportService(db).import_statement(filename, content)
    except FatalParseError as e:
        logger.warning(f"Rejected statement {filename}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ImportSummaryResponse.model_validate(summary)


@router.get("/imports", response_model=list[ImportBatchResponse])
async def list_imports(db: Session = Depends(get_db)) -> list[ImportBatchResponse]:
    """Most recent import batches, newest first."""
    batches = ImportBatchRepository(db).find_recent(RECENT_IMPORTS_LIMIT)
    return [ImportBatchResponse.model_validate(b) for b in batches]


@router.delete("/imports/{batch_id}", response_model=BatchDeleteResponse)
async def delete_import(batch_id: int, db: Session = Depends(get_db)) -> BatchDeleteResponse:
    """Delete an import batch and everything it introduced, then recompute positions.

    Raises:
        404: Batch not found
    """
    try:
        counts = StatementImportService(db).delete_batch(batch_id)
    except NotFoundError as e:
        raise _not_found(e)

    return BatchDeleteResponse(message=f"Import {batch_id} deleted", **counts)


@router.get("/trades", response_model=PaginatedResponse[TradeResponse])
async def list_trades(
    symbol: str | None = Query(None, description="Filter by symbol"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> PaginatedResponse[TradeResponse]:
    """Stored trades, newest first."""
    trades, total = TradeRepository(db).find_page(symbol=symbol, skip=skip, limit=limit)
    return PaginatedResponse[TradeResponse](
        items=[TradeResponse.model_validate(t) for t in trades],
        total=total,
        skip=skip,
        limit=limit,
        has_more=skip + len(trades) < total,
    )


@router.delete("/trades/{trade_id}", response_model=MessageResponse)
async def delete_trade(trade_id: int, db: Session = Depends(get_db)) -> MessageResponse:
    """Delete one trade and recompute positions.

    Raises:
        404: Trade not found
    """
    try:
        StatementImportService(db).delete_trade(trade_id)
    except NotFoundError as e:
        raise _not_found(e)

    return MessageResponse(message=f"Trade {trade_id} deleted")


@router.get("/income", response_model=list[IncomeResponse])
async def list_income(
    symbol: str | None = Query(None, description="Filter by symbol"),
    income_type: str | None = Query(None, description="DIVIDEND, INTEREST or OTHER"),
    db: Session = Depends(get_db),
) -> list[IncomeResponse]:
    rows = IncomeRepository(db).find_all(symbol=symbol, income_type=income_type)
    return [IncomeResponse.model_validate(r) for r in rows]


@router.get("/positions", response_model=PortfolioSummaryResponse)
async def get_positions(
    include_closed: bool = Query(False, description="Include closed positions"),
    db: Session = Depends(get_db),
    quote_provider: QuoteProvider = Depends(get_quote_provider),
) -> PortfolioSummaryResponse:
    """Reconstructed positions valued with live quotes.

    Totals are in the base currency and cover open positions; realized P&L
    covers closed positions too when they are included.
    """
    positions = PositionRepository(db).find_all(include_closed=include_closed)
    fx_table = StatementImportService(db).current_fx_table()
    summary = PortfolioValuationService(quote_provider, fx_table).summarize(positions)
    return PortfolioSummaryResponse.model_validate(summary)


@router.post("/positions/recalculate", response_model=RecalculateResponse)
async def recalculate_positions(db: Session = Depends(get_db)) -> RecalculateResponse:
    """Rebuild positions and FX rates from every stored trade."""
    result = StatementImportService(db).recalculate_positions()
    return RecalculateResponse(
        positions=len(result.positions),
        open_positions=len(result.open_positions),
        total_realized_pnl_base=float(result.total_realized_pnl_base),
        warnings=[str(w) for w in result.clamp_warnings],
    )


@router.get("/fx-rates", response_model=list[ExchangeRateResponse])
async def list_fx_rates(
    currency: str | None = Query(None, description="Filter by currency"),
    db: Session = Depends(get_db),
) -> list[ExchangeRateResponse]:
    """Rates used by the latest reconstruction, with provenance."""
    rates = ExchangeRateRepository(db).find_all(currency=currency)
    return [ExchangeRateResponse.model_validate(r) for r in rates]
