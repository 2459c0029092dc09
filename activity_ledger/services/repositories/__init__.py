"""Repository layer - data access abstraction.

Services use repositories for data access rather than querying SQLAlchemy
models directly.

Dependency direction: Services -> Repositories -> Models
"""

from .exceptions import NotFoundError, RepositoryError
from .import_batch_repository import ImportBatchRepository
from .income_repository import ForexConversionRepository, IncomeRepository
from .position_repository import ExchangeRateRepository, PositionRepository
from .trade_repository import TradeRepository

__all__ = [
    "ExchangeRateRepository",
    "ForexConversionRepository",
    "ImportBatchRepository",
    "IncomeRepository",
    "NotFoundError",
    "PositionRepository",
    "RepositoryError",
    "TradeRepository",
]
