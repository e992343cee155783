"""Price adjustment rules for subscriptions and appointments.

All functions are pure and work on ``Decimal`` values. Inputs that arrive as
floats or strings are converted with ``Decimal(str(x))`` so the arithmetic is
reproducible to the cent.
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

REASON_MULTI_PET_DISCOUNT = 'multi_pet_discount'
REASON_LOYALTY_DISCOUNT = 'loyalty_discount'
REASON_TRAVEL_FEE = 'travel_fee'
REASON_URGENCY_FEE = 'urgency_fee'
REASON_PROMOTIONAL_DISCOUNT = 'promotional_discount'
REASON_DIFFICULTY_SURCHARGE = 'difficulty_surcharge'
REASON_OTHER = 'other'

ADJUSTMENT_REASONS = (
    REASON_MULTI_PET_DISCOUNT,
    REASON_LOYALTY_DISCOUNT,
    REASON_TRAVEL_FEE,
    REASON_URGENCY_FEE,
    REASON_PROMOTIONAL_DISCOUNT,
    REASON_DIFFICULTY_SURCHARGE,
    REASON_OTHER,
)

MIN_ADJUSTMENT_PERCENTAGE = Decimal('-100')
MAX_ADJUSTMENT_PERCENTAGE = Decimal('100')

ZERO = Decimal('0')
CENT = Decimal('0.01')

AdjustedPrice = namedtuple('AdjustedPrice', ['adjustment_value', 'final_price'])

AggregatePrice = namedtuple('AggregatePrice', [
    'base_price', 'final_price', 'adjustment_value', 'adjustment_percentage'
])

SubscriptionPricing = namedtuple('SubscriptionPricing', [
    'base_price', 'final_price', 'adjustment_value', 'adjustment_percentage',
    'adjustment_reason', 'manual_percentage', 'automatic_percentage',
])


def to_decimal(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_price(value):
    """Externally visible prices never go below zero."""
    return max(to_decimal(value), ZERO)


def clamp_percentage(value):
    return min(max(to_decimal(value), MIN_ADJUSTMENT_PERCENTAGE), MAX_ADJUSTMENT_PERCENTAGE)


def multi_pet_discount(active_subscription_count):
    """Automatic discount percentage for a client holding several subscriptions."""
    if active_subscription_count >= 3:
        return -15
    if active_subscription_count >= 2:
        return -10
    return 0


def apply_adjustment(base_price, adjustment_percentage):
    """Apply a signed percentage to a base price.

    The adjustment value is rounded to cents (half up) before it is added,
    so ``final_price == base + base * pct / 100`` holds to the cent and
    ``final_price == base + adjustment_value`` holds exactly. The final
    price is not clamped here; callers that show it to users go through
    ``clamp_price``.
    """
    base = to_decimal(base_price)
    adjustment_value = to_money(base * to_decimal(adjustment_percentage) / Decimal('100'))
    return AdjustedPrice(adjustment_value, to_money(base + adjustment_value))


def extract_manual_adjustment(total_adjustment_percentage, adjustment_reason, estimated_pet_count):
    """Recover the manually entered part of a stored adjustment percentage.

    A subscription stored with the multi-pet reason carries the automatic
    discount folded into its percentage; subtracting it back out leaves what
    the user typed.
    """
    total = to_decimal(total_adjustment_percentage)
    if adjustment_reason != REASON_MULTI_PET_DISCOUNT:
        return total
    return total - multi_pet_discount(estimated_pet_count or 0)


def calculate_subscription_pricing(base_price, adjustment_percentage=None, adjustment_reason=None,
                                   pet_count=1, is_discount_target=False, recorded_pet_count=None):
    manual = extract_manual_adjustment(
        adjustment_percentage or 0,
        adjustment_reason,
        recorded_pet_count if recorded_pet_count is not None else pet_count,
    )

    automatic = Decimal(multi_pet_discount(pet_count)) if is_discount_target and pet_count > 1 else ZERO
    total = clamp_percentage(manual + automatic)

    if automatic < 0:
        reason = REASON_MULTI_PET_DISCOUNT
    elif adjustment_reason and adjustment_reason != REASON_MULTI_PET_DISCOUNT and manual != 0:
        reason = adjustment_reason
    elif manual != 0:
        reason = REASON_OTHER
    else:
        reason = None

    base = to_money(base_price)
    adjustment_value, final_price = apply_adjustment(base, total)
    final_price = to_money(clamp_price(final_price))

    return SubscriptionPricing(
        base_price=base,
        final_price=final_price,
        adjustment_value=final_price - base,
        adjustment_percentage=to_money(total),
        adjustment_reason=reason,
        manual_percentage=manual,
        automatic_percentage=automatic,
    )


def aggregate_pricing(base_total, final_total):
    """Appointment-level adjustment derived from summed member prices."""
    base = to_money(base_total)
    final = to_money(final_total)
    adjustment_value = final - base
    if base > 0:
        percentage = to_money(adjustment_value / base * Decimal('100'))
    else:
        percentage = to_money(ZERO)
    return AggregatePrice(base, final, adjustment_value, percentage)
