"""Turn captured statement rows into normalized trade and income records."""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from activity_ledger.constants import (
    CASH_SYMBOL,
    AssetClass,
    IncomeType,
    SectionName,
    TradeAction,
)
from activity_ledger.services.errors import RowError
from activity_ledger.services.ledger_types import (
    ForexTrade,
    IncomeRecord,
    NormalizedStatement,
    TradeRecord,
)
from activity_ledger.services.statement_parser import RawRow, RawStatement, parse_statement

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Two parses with different defaults agree only when the value names year, month and day
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

_FOREX_PAIR = re.compile(r"([A-Z]{3})\.([A-Z]{3})")

# "AAPL(US0378331005) Cash Dividend USD 0.24 per Share"
_DIVIDEND_SYMBOL = re.compile(r"^([A-Za-z0-9.]+)\s*\(")

# Placeholder values brokers use for "no value"
_EMPTY_AMOUNTS = frozenset({"", "-", "--", "n/a"})

# Trades rows that describe executions; ClosedLot/SubTotal rows repeat the same fills
_EXECUTION_DISCRIMINATORS = frozenset({"order", "trade"})

_INCOME_TYPES = {
    SectionName.DIVIDENDS: IncomeType.DIVIDEND,
    SectionName.INTEREST: IncomeType.INTEREST,
}


def _parse_free_form(value: str) -> date | None:
    """Parse a free-form date, rejecting values that leave out any part of it."""
    try:
        first, second = (date_parser.parse(value, default=d) for d in _PARSE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first.date()


def parse_statement_date(value: str) -> date | None:
    """Parse a statement date, discarding any time of day.

    Accepts "2026-01-20", "2026-01-20, 20:53:11" and free-form strings such as
    "January 20, 2026". Returns None when the value is empty or unparseable.
    """
    cleaned = (value or "").strip()
    if not cleaned:
        return None

    if _ISO_DATE.match(cleaned):
        try:
            return date.fromisoformat(cleaned[:10])
        except ValueError:
            return None

    parsed = _parse_free_form(cleaned)
    if parsed is not None:
        return parsed

    # "01/20/2026, 20:53:11" style: retry without the time part
    head = cleaned.split(",")[0].strip()
    if head and head != cleaned:
        return _parse_free_form(head)
    return None


def parse_amount(value: str) -> Decimal | None:
    """Parse a number such as "-3,000" or "1,234.50".

    Returns None for blank placeholders.

    Raises:
        ValueError: If the value is present but not a finite number
    """
    cleaned = (value or "").strip().replace(",", "").replace('"', "").replace(" ", "")
    if cleaned.lower() in _EMPTY_AMOUNTS:
        return None

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Invalid number: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid number: {value!r}")
    return amount


def normalize_symbol(value: str) -> str:
    """Strip any exchange/class suffix after the first '.' and uppercase.

    "AAPL.NASDAQ" -> "AAPL". Note this also folds "BRK.B" into "BRK".
    """
    return (value or "").split(".")[0].strip().upper()


def split_forex_pair(value: str) -> tuple[str, str] | None:
    """Return (base_leg, quote_leg) when the symbol has the shape of a currency pair.

    Any two distinct 3-letter codes qualify ("SGD.HKD", "SGD.MYR"); class
    suffixes such as "BRK.B" do not.
    """
    match = _FOREX_PAIR.fullmatch((value or "").strip().upper())
    if not match or match.group(1) == match.group(2):
        return None
    return match.group(1), match.group(2)


class RecordNormalizer:
    """Convert a :class:`RawStatement` into a :class:`NormalizedStatement`.

    Every row-level problem is collected as a ``RowError`` and the row is
    skipped; normalization itself never raises.
    """

    def normalize(self, raw: RawStatement) -> NormalizedStatement:
        result = NormalizedStatement(errors=list(raw.errors))

        for row in raw.rows(SectionName.STATEMENT):
            self._apply_statement_row(row, result)

        for row in raw.rows(SectionName.TRADES):
            self._collect(self._normalize_trade_row, row, result)

        for section in (SectionName.DIVIDENDS, SectionName.INTEREST):
            for row in raw.rows(section):
                self._collect(self._normalize_income_row, row, result)

        self._fill_missing_period(result)

        logger.info(
            f"Normalized {len(result.trades)} trades, {len(result.income)} income rows, "
            f"{len(result.forex_trades)} forex trades ({len(result.errors)} row errors)"
        )
        return result

    def _collect(self, handler, row: RawRow, result: NormalizedStatement) -> None:
        try:
            record = handler(row)
        except ValueError as e:
            error = RowError(line_number=row.line_number, section=row.section, message=str(e))
            logger.warning(f"Skipping row: {error}")
            result.errors.append(error)
            return

        if isinstance(record, TradeRecord):
            result.trades.append(record)
        elif isinstance(record, ForexTrade):
            result.forex_trades.append(record)
        elif isinstance(record, IncomeRecord):
            result.income.append(record)

    def _normalize_trade_row(self, row: RawRow) -> TradeRecord | ForexTrade | None:
        discriminator = row.get("datadiscriminator").lower()
        if discriminator and discriminator not in _EXECUTION_DISCRIMINATORS:
            return None

        raw_symbol = row.get("symbol")
        date_str = row.get("date/time", "trade date", "date")
        if not raw_symbol or not date_str:
            raise ValueError("Missing symbol or trade date")

        trade_date = parse_statement_date(date_str)
        if trade_date is None:
            raise ValueError(f"Invalid trade date: {date_str}")

        quantity = parse_amount(row.get("quantity"))
        if not quantity:
            raise ValueError(f"Missing or zero quantity for {raw_symbol}")

        price = parse_amount(row.get("t. price", "trade price", "price")) or Decimal("0")
        if price < 0:
            raise ValueError(f"Negative price for {raw_symbol}: {price}")

        pair = split_forex_pair(raw_symbol)
        if pair is None and "forex" in row.get("asset category", "asset class").lower():
            raise ValueError(f"Unrecognized currency pair: {raw_symbol}")
        if pair:
            if price == 0:
                raise ValueError(f"Missing price for forex trade {raw_symbol}")
            return ForexTrade(
                trade_date=trade_date,
                pair=f"{pair[0]}.{pair[1]}",
                base_leg=pair[0],
                quote_leg=pair[1],
                price=price,
                quantity=quantity,
                sequence=row.line_number,
            )

        commission_idx = row.header.find("comm/fee", "commission", "comm")
        fees_idx = row.header.find(
            "fees",
            "fee",
            exclude=frozenset({commission_idx}) if commission_idx is not None else frozenset(),
        )
        commission = parse_amount(row.cell(commission_idx)) or Decimal("0")
        fees = parse_amount(row.cell(fees_idx)) or Decimal("0")

        # Zero is how statements print "no realized P/L" on opening trades
        realized_pnl = parse_amount(row.get("realized p/l", "realized p&l")) or None

        return TradeRecord(
            trade_date=trade_date,
            settle_date=parse_statement_date(row.get("settle date")),
            symbol=normalize_symbol(raw_symbol),
            description=row.get("description"),
            asset_class=row.get("asset category", "asset class") or AssetClass.STOCK,
            action=TradeAction.BUY if quantity > 0 else TradeAction.SELL,
            quantity=abs(quantity),
            price=price,
            currency=(row.get("currency") or "USD").upper(),
            fx_rate=parse_amount(row.get("fx rate")),
            proceeds=parse_amount(row.get("proceeds")),
            cost_basis=parse_amount(row.get("basis")),
            realized_pnl=realized_pnl,
            commission=abs(commission),
            fees=abs(fees),
            sequence=row.line_number,
        )

    def _normalize_income_row(self, row: RawRow) -> IncomeRecord | None:
        date_str = row.get("date")
        if not date_str:
            if any(cell.strip().lower().startswith("total") for cell in row.cells):
                return None
            raise ValueError("Missing income date")

        income_date = parse_statement_date(date_str)
        if income_date is None:
            raise ValueError(f"Invalid income date: {date_str}")

        amount = parse_amount(row.get("amount", "total"))
        if amount is None:
            raise ValueError("Missing income amount")
        if amount == 0:
            return None

        description = row.get("description")
        symbol = normalize_symbol(row.get("symbol"))
        if not symbol:
            match = _DIVIDEND_SYMBOL.match(description)
            symbol = normalize_symbol(match.group(1)) if match else CASH_SYMBOL

        return IncomeRecord(
            date=income_date,
            symbol=symbol,
            income_type=_INCOME_TYPES.get(row.section, IncomeType.OTHER),
            amount=amount,
            currency=(row.get("currency") or "USD").upper(),
            description=description,
        )

    def _apply_statement_row(self, row: RawRow, result: NormalizedStatement) -> None:
        """Read the statement period from either header layout.

        Key/value layout: ``Field Name,Field Value`` with a ``Period`` row.
        Column layout: ``From Date``/``To Date`` (or start/end) columns.
        """
        try:
            if "field name" in row.header:
                if row.get("field name").lower() == "period":
                    self._set_period(result, *self._parse_period(row.get("field value")))
                return

            start_str = row.get("from date", "start date")
            end_str = row.get("to date", "end date")
            if start_str or end_str:
                start = parse_statement_date(start_str) if start_str else None
                end = parse_statement_date(end_str) if end_str else None
                if (start_str and start is None) or (end_str and end is None):
                    raise ValueError(f"Invalid statement dates: {start_str!r} - {end_str!r}")
                self._set_period(result, start, end)
                return

            period = row.get("period")
            if period:
                self._set_period(result, *self._parse_period(period))
        except ValueError as e:
            error = RowError(line_number=row.line_number, section=row.section, message=str(e))
            logger.warning(f"Skipping statement row: {error}")
            result.errors.append(error)

    @staticmethod
    def _parse_period(value: str) -> tuple[date, date]:
        parts = [p.strip() for p in value.split(" - ")] if " - " in value else [value.strip()]
        dates = [parse_statement_date(p) for p in parts]
        if not dates or any(d is None for d in dates):
            raise ValueError(f"Invalid statement period: {value!r}")
        return dates[0], dates[-1]

    @staticmethod
    def _set_period(result: NormalizedStatement, start: date | None, end: date | None) -> None:
        if start is not None:
            result.statement_start = start
        if end is not None:
            result.statement_end = end

    @staticmethod
    def _fill_missing_period(result: NormalizedStatement) -> None:
        """Derive the statement range from record dates when the file has none."""
        if result.statement_start and result.statement_end:
            return

        dates = (
            [t.trade_date for t in result.trades]
            + [i.date for i in result.income]
            + [f.trade_date for f in result.forex_trades]
        )
        if not dates:
            return

        if result.statement_start is None:
            result.statement_start = min(dates)
        if result.statement_end is None:
            result.statement_end = max(dates)


def normalize_statement(raw: RawStatement) -> NormalizedStatement:
    return RecordNormalizer().normalize(raw)


def load_statement(content: bytes) -> NormalizedStatement:
    """Parse and normalize a statement buffer in one step.

    Raises:
        FatalParseError: If the buffer cannot be tokenized into rows
    """
    return normalize_statement(parse_statement(content))
