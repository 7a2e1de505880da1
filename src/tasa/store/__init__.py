"""Rate persistence: SQLite rates table and the legacy JSON history file."""

from tasa.store.database import RatesDatabase
from tasa.store.history import RatesHistoryFile
from tasa.store.rates import RateStore

__all__ = ["RateStore", "RatesDatabase", "RatesHistoryFile"]
