"""Custom exceptions for the rate ingestion service.

Each ingestion stage has its own error type so failures can be reported
per source with the stage that produced them.
"""


class TasaError(Exception):
    """Base exception for all service errors."""


class FetchError(TasaError):
    """Raised when an upstream source cannot be reached."""


class ExtractionError(TasaError):
    """Raised when the expected data is missing from a source response."""


class ParseError(TasaError):
    """Raised when a raw price string is not a finite number."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"Failed to parse rate: {raw!r}")
        self.raw = raw


class StoreError(TasaError):
    """Raised when the persistence backend rejects a read or write.

    The backend's message is passed through verbatim.
    """
