"""Same-day FX rates derived from currency conversions inside a statement.

A conversion row such as ``SGD.HKD`` at ``6.07482`` means 1 SGD bought 6.07482
HKD on that day. With SGD as the base currency that gives an HKD rate-to-base
of ``1 / 6.07482``. A pair quoted the other way round (``USD.SGD`` at 1.27)
gives the rate directly. Several conversions on the same day are averaged.

Days with no conversion fall back to a configured per-currency default, and
the fallback is tagged so reports can tell estimated conversions from
measured ones.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal

from activity_ledger.config import settings
from activity_ledger.constants import FxProvenance
from activity_ledger.services.errors import RateFallbackWarning
from activity_ledger.services.ledger_types import ForexTrade, FxObservation

logger = logging.getLogger(__name__)

_ONE = Decimal("1")


def rate_from_forex_trade(trade: ForexTrade, base_currency: str) -> tuple[str, Decimal] | None:
    """Rate-to-base implied by one conversion, as (currency, rate).

    Returns None when neither leg is the base currency or the price is unusable.
    """
    if trade.price <= 0:
        return None
    if trade.quote_leg == base_currency:
        return trade.base_leg, trade.price
    if trade.base_leg == base_currency:
        return trade.quote_leg, _ONE / trade.price
    return None


class FxRateTable:
    """Resolved ``(currency, date) -> rate-to-base`` lookup.

    Observed rates come from statement conversions. Any other lookup resolves
    to the default for that currency and is remembered, so each
    ``(currency, date)`` pair has exactly one rate and one warning.
    """

    def __init__(
        self,
        base_currency: str,
        observed: Mapping[tuple[str, date], FxObservation] | None = None,
        defaults: Mapping[str, Decimal] | None = None,
    ) -> None:
        self.base_currency = base_currency
        self._observed = dict(observed or {})
        self._defaults = dict(defaults or {})
        self._fallbacks: dict[tuple[str, date], FxObservation] = {}
        self.warnings: list[RateFallbackWarning] = []

    def rate_for(self, currency: str, day: date) -> FxObservation:
        """Resolve the rate for a currency on a day."""
        if currency == self.base_currency:
            return FxObservation(currency=currency, date=day, rate=_ONE, sample_count=0)

        key = (currency, day)
        if key in self._observed:
            return self._observed[key]
        if key in self._fallbacks:
            return self._fallbacks[key]

        rate = self._defaults.get(currency)
        if rate is None:
            logger.warning(f"No default FX rate configured for {currency}, using 1")
            rate = _ONE

        fallback = FxObservation(
            currency=currency, date=day, rate=rate, provenance=FxProvenance.DEFAULT
        )
        self._fallbacks[key] = fallback
        self.warnings.append(RateFallbackWarning(currency=currency, date=day, rate=rate))
        logger.debug(f"Using default {currency} rate {rate} for {day}")
        return fallback

    def rate(self, currency: str, day: date) -> Decimal:
        return self.rate_for(currency, day).rate

    def latest_rate(self, currency: str) -> FxObservation:
        """Most recent observed rate for a currency, or its default."""
        if currency == self.base_currency:
            return FxObservation(currency=currency, date=date.today(), rate=_ONE)

        days = [day for (cur, day) in self._observed if cur == currency]
        if days:
            return self._observed[(currency, max(days))]

        return FxObservation(
            currency=currency,
            date=date.today(),
            rate=self._defaults.get(currency, _ONE),
            provenance=FxProvenance.DEFAULT,
        )

    @property
    def observations(self) -> list[FxObservation]:
        """Every resolved rate so far, observed and defaulted, in date order."""
        resolved = list(self._observed.values()) + list(self._fallbacks.values())
        return sorted(resolved, key=lambda o: (o.date, o.currency))


def default_rates_from_settings() -> dict[str, Decimal]:
    return {currency: Decimal(str(rate)) for currency, rate in settings.default_fx_rates.items()}


def resolve_fx_rates(
    forex_trades: Iterable[ForexTrade],
    base_currency: str | None = None,
    defaults: Mapping[str, Decimal] | None = None,
    required: Iterable[tuple[str, date]] = (),
) -> FxRateTable:
    """Build the FX table from conversions, averaging same-day observations.

    Args:
        forex_trades: Conversion rows from one or more statements
        base_currency: Reporting currency (default: settings.base_currency)
        defaults: Per-currency fallback rates (default: settings.default_fx_rates)
        required: (currency, date) pairs to resolve up front, e.g. every trade's
            currency and date, so fallbacks are known before folding

    Returns:
        FxRateTable with one rate per (currency, date)
    """
    base = base_currency or settings.base_currency
    fallback_rates = defaults if defaults is not None else default_rates_from_settings()

    samples: dict[tuple[str, date], list[Decimal]] = defaultdict(list)
    for trade in forex_trades:
        derived = rate_from_forex_trade(trade, base)
        if derived is None:
            logger.debug(f"Ignoring conversion {trade.pair} on {trade.trade_date}: no {base} leg")
            continue
        currency, rate = derived
        samples[(currency, trade.trade_date)].append(rate)

    observed = {
        (currency, day): FxObservation(
            currency=currency,
            date=day,
            rate=sum(rates, Decimal("0")) / len(rates),
            provenance=FxProvenance.OBSERVED,
            sample_count=len(rates),
        )
        for (currency, day), rates in samples.items()
    }

    table = FxRateTable(base, observed, fallback_rates)
    for currency, day in required:
        table.rate_for(currency, day)

    logger.info(
        f"Resolved {len(observed)} observed FX rates and {len(table.warnings)} defaults "
        f"(base {base})"
    )
    return table
