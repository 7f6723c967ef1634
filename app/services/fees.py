from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.10")

class Fees(NamedTuple):
    platform_fee: int
    seller_amount: int

def compute_fees(gross_amount: int, rate: Decimal = DEFAULT_PLATFORM_FEE_RATE) -> Fees:
    """
    Split a gross sale amount (minor currency units) into platform and seller shares.
    The platform fee is rounded half-up; the seller gets the exact remainder so
    both parts always add up to the gross amount.
    """
    if isinstance(gross_amount, bool) or not isinstance(gross_amount, int):
        raise ValueError(f"Gross amount must be an integer, got {gross_amount!r}")
    if gross_amount < 0:
        raise ValueError(f"Gross amount must not be negative, got {gross_amount}")

    platform_fee = int((Decimal(gross_amount) * Decimal(rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return Fees(platform_fee=platform_fee, seller_amount=gross_amount - platform_fee)
