"""Shared data models for rate ingestion and persistence.

Prices are Decimal end to end and only become floats when serialised
to JSON for the client.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Stage(str, Enum):
    """Ingestion pipeline stage, reported when a source fails."""

    FETCH = "fetch"
    EXTRACT = "extract"
    PARSE = "parse"
    PERSIST = "persist"


@dataclass(frozen=True)
class RateSource:
    """A named rate the service ingests."""

    name: str
    display_name: str


USD_BCV = RateSource("USD_BCV", "Dólar BCV")
EUR_BCV = RateSource("EUR_BCV", "Euro BCV")
USDT_BINANCE = RateSource("USDT_BINANCE", "USDT Binance")


@dataclass
class RateRecord:
    """A persisted row of the rates table. At most one row exists per name."""

    name: str
    display_name: str
    price: Decimal
    updated_at: str  # ISO-8601 UTC
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "price": float(self.price),
            "updated_at": self.updated_at,
            "created_at": self.created_at,
        }


@dataclass
class RatesEntry:
    """An entry of the append-only local history file.

    Serialised with the camelCase ``fetchedAt`` key the client expects.
    """

    id: str
    base: str
    rates: dict[str, float]
    fetched_at: str
    source: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "base": self.base,
            "rates": self.rates,
            "fetchedAt": self.fetched_at,
        }
        if self.source is not None:
            data["source"] = self.source
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RatesEntry":
        rates = data.get("rates")
        return cls(
            id=str(data.get("id", "")),
            base=str(data.get("base", "")),
            rates=rates if isinstance(rates, dict) else {},
            fetched_at=data.get("fetchedAt", ""),
            source=data.get("source"),
        )


@dataclass(frozen=True)
class Decoded:
    """Outcome of decoding a source response: a raw price or a failure reason."""

    value: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: str) -> "Decoded":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Decoded":
        return cls(error=error)


@dataclass
class SourceResult:
    """Per-rate outcome of one ingestion run."""

    name: str
    price: Decimal | None = None
    data: list[RateRecord] = field(default_factory=list)
    stage: Stage | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IngestionReport:
    """Aggregate of per-source results, serialised as the endpoint response."""

    results: list[SourceResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> list[SourceResult]:
        return [r for r in self.results if not r.ok]

    def to_dict(self) -> dict:
        failures = self.failures
        return {
            "success": self.success,
            "rates": [
                {
                    "name": r.name,
                    "price": float(r.price) if r.price is not None else None,
                    "data": [row.to_dict() for row in r.data],
                }
                for r in self.results
                if r.ok
            ],
            "failures": [
                {
                    "name": r.name,
                    "stage": r.stage.value if r.stage else None,
                    "error": r.error,
                }
                for r in failures
            ],
            "error": failures[0].error if failures else None,
        }
