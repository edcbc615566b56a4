"""Integer arithmetic for the xu wallet currency.

All prices, amounts and balances are int xu. No float, no Decimal.
"""

_BPS_DENOMINATOR = 10_000


def xu_to_display(amount: int) -> str:
    """Vietnamese-style grouping: 1500000 -> '1.500.000 xu', -2500 -> '-2.500 xu'."""
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}{grouped} xu"


def split_amount(amount: int, seller_share_bps: int) -> tuple[int, int]:
    """Split a purchase amount into (seller_earnings, platform_commission).

    seller_earnings = floor(amount * share_bps / 10000); the commission is the
    remainder, so the two parts always sum to exactly `amount`.
    """
    if amount < 0:
        raise ValueError(f"Amount must be >= 0, got {amount}")
    if not (0 <= seller_share_bps <= _BPS_DENOMINATOR):
        raise ValueError(f"Seller share must be 0-10000 bps, got {seller_share_bps}")
    seller_earnings = amount * seller_share_bps // _BPS_DENOMINATOR
    return seller_earnings, amount - seller_earnings
