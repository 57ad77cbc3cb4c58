"""Integer arithmetic utilities for cents-based money.

All prices, fees and balances use int (cents). No float, no Decimal.
"""


def validate_amount(amount: int) -> None:
    """Validate that a money amount is a positive number of cents."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"Amount must be a positive int of cents, got {amount!r}")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 820000 -> '¥8,200.00', -1200 -> '-¥12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-¥{abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"¥{cents // 100:,}.{cents % 100:02d}"


def percentage_fee(amount: int, rate_bps: int) -> int:
    """Percentage fee rounded half-up to the cent.

    fee = round_half_up(amount * rate_bps / 10000)
    Using integer arithmetic: (a * bps + 5000) // 10000
    """
    if amount == 0 or rate_bps == 0:
        return 0
    return (amount * rate_bps + 5000) // 10000
