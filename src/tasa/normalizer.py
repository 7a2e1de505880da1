"""Conversion of locale-formatted price strings into two-decimal Decimals.

Sources publish prices with a comma decimal separator ("36,50"). Parsing
goes through Decimal so rounding is exact and half-up on the written
digits, with no binary floating-point drift.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from tasa.exceptions import ParseError

TWO_PLACES = Decimal("0.01")


def normalize_price(raw: str) -> Decimal:
    """Parse a comma-decimal price and round it to two decimal places.

    Rounds half away from zero. Raises ParseError naming the raw input
    when it is not a finite number.
    """
    text = raw.strip().replace(",", ".", 1)
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ParseError(raw) from exc

    if not value.is_finite():
        raise ParseError(raw)

    try:
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        # more integer digits than the context precision allows
        raise ParseError(raw) from exc
