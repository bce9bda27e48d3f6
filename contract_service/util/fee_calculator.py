from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP


@dataclass(frozen=True)
class FeeSplit:
    platform_fee: int
    net_amount: int


def compute_split(gross_amount: int, commission_percent: int) -> FeeSplit:
    """Split a gross amount (minor units) into platform fee and landlord net.

    The fee is rounded half-up to whole minor units, so fee + net is always
    exactly the gross amount.
    """
    if gross_amount < 0:
        raise ValueError("gross_amount must not be negative")
    if commission_percent < 0 or commission_percent > 100:
        raise ValueError("commission_percent must be between 0 and 100")

    fee = (Decimal(gross_amount) * Decimal(commission_percent) / Decimal(100)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP)
    platform_fee = int(fee)
    return FeeSplit(platform_fee=platform_fee, net_amount=gross_amount - platform_fee)
