"""Integer arithmetic utilities for micro-unit money.

All reserves, shares, balances and payouts are int in the smallest currency
unit (6 decimals, 1_000_000 = 1.0). No float, no Decimal for money.
Floats are only produced for ratios (prices, probabilities, impact).
"""

from src.pm_common.errors import InvalidAmountError

UNIT_DECIMALS = 6
ONE_UNIT = 10**UNIT_DECIMALS
BPS_DENOMINATOR = 10_000
SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def ceil_div(a: int, b: int) -> int:
    """Integer ceiling division for non-negative a, positive b."""
    return -(-a // b)


def mul_div_floor(a: int, b: int, c: int) -> int:
    """floor(a * b / c) without intermediate rounding."""
    return (a * b) // c


def calc_bps_fee(amount: int, fee_bps: int) -> int:
    """Fee with ceiling division (protocol never loses).

    fee = ceil(amount * fee_bps / 10000)
    """
    if amount <= 0 or fee_bps == 0:
        return 0
    return (amount * fee_bps + BPS_DENOMINATOR - 1) // BPS_DENOMINATOR


def units_to_str(amount: int) -> str:
    """Wire format: integers always travel as decimal strings."""
    return str(int(amount))


def units_to_display(amount: int) -> str:
    """Convert micro-units to display string: 1500000 -> '1.500000', -250 -> '-0.000250'."""
    if amount < 0:
        return "-" + units_to_display(-amount)
    return f"{amount // ONE_UNIT:,}.{amount % ONE_UNIT:0{UNIT_DECIMALS}d}"


def parse_units(value: str | int) -> int:
    """Parse a wire amount into int micro-units. Rejects floats, signs and junk."""
    if isinstance(value, bool):
        raise InvalidAmountError(value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidAmountError(value)
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise InvalidAmountError(value)


def validate_positive(amount: int) -> None:
    """Raise InvalidAmountError unless amount is a positive int."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
