"""Decimal arithmetic helpers for on-chain integer amounts."""

from decimal import Context, Decimal, localcontext

# uint256 values have up to 78 significant digits
PRECISION = 96


def _context() -> Context:
    return Context(prec=PRECISION)


def from_raw(raw: int | str | Decimal, decimals: int) -> Decimal:
    """
    Convert a raw integer amount into token units.

    Parameters
    ----------
    raw : int | str | Decimal
        Raw on-chain amount
    decimals : int
        Token decimals

    Returns
    -------
    Decimal
        ``raw / 10**decimals`` without precision loss

    """
    with localcontext(_context()):
        return Decimal(raw) / (Decimal(10) ** decimals)


def multiply(*values: Decimal) -> Decimal:
    """Product of decimals computed at full precision."""
    with localcontext(_context()):
        result = Decimal(1)
        for value in values:
            result *= value
        return result


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """
    Divide, returning zero when the denominator is zero.

    Parameters
    ----------
    numerator : Decimal
        Dividend
    denominator : Decimal
        Divisor

    Returns
    -------
    Decimal
        ``numerator / denominator`` or ``Decimal(0)``

    """
    if denominator == 0:
        return Decimal(0)
    with localcontext(_context()):
        return Decimal(numerator) / Decimal(denominator)
