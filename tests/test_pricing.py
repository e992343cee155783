from decimal import Decimal

import pytest

from petgroom.utils.pricing import (
    multi_pet_discount, apply_adjustment, extract_manual_adjustment,
    calculate_subscription_pricing, aggregate_pricing, clamp_price,
    REASON_MULTI_PET_DISCOUNT, REASON_LOYALTY_DISCOUNT, REASON_OTHER,
)


@pytest.mark.parametrize('count, expected', [(0, 0), (1, 0), (2, -10), (3, -15), (4, -15), (12, -15)])
def test_multi_pet_discount_tiers(count, expected):
    assert multi_pet_discount(count) == expected


@pytest.mark.parametrize('base, pct', [('50', '-10'), ('80', '25'), ('0', '-50'), ('33.33', '-100'), ('19.99', '0')])
def test_apply_adjustment_identities(base, pct):
    result = apply_adjustment(Decimal(base), Decimal(pct))
    assert result.adjustment_value == result.final_price - Decimal(base)
    assert result.final_price == (Decimal(base) + Decimal(base) * Decimal(pct) / 100).quantize(Decimal('0.01'))


def test_apply_adjustment_rounds_value_to_cents():
    result = apply_adjustment(Decimal('33.33'), Decimal('33.33'))
    assert result.adjustment_value == Decimal('11.11')
    assert result.final_price == Decimal('44.44')
    assert abs(result.final_price - Decimal('44.438889')) < Decimal('0.01')


def test_apply_adjustment_does_not_clamp():
    result = apply_adjustment(Decimal('10'), Decimal('-150'))
    assert result.final_price == Decimal('-5.00')
    assert clamp_price(result.final_price) == 0


def test_extract_manual_adjustment_only_strips_multi_pet_component():
    assert extract_manual_adjustment(-15, REASON_MULTI_PET_DISCOUNT, 2) == Decimal('-5')
    assert extract_manual_adjustment(-10, REASON_MULTI_PET_DISCOUNT, 2) == 0
    assert extract_manual_adjustment(-15, REASON_LOYALTY_DISCOUNT, 2) == Decimal('-15')
    assert extract_manual_adjustment(5, None, 3) == Decimal('5')


def test_discount_target_gets_automatic_discount():
    pricing = calculate_subscription_pricing(Decimal('50'), pet_count=2, is_discount_target=True)
    assert pricing.final_price == Decimal('45.00')
    assert pricing.adjustment_value == Decimal('-5.00')
    assert pricing.adjustment_percentage == Decimal('-10.00')
    assert pricing.adjustment_reason == REASON_MULTI_PET_DISCOUNT


def test_other_pets_in_batch_pay_base_price():
    pricing = calculate_subscription_pricing(Decimal('50'), pet_count=2, is_discount_target=False)
    assert pricing.final_price == Decimal('50.00')
    assert pricing.adjustment_reason is None


def test_manual_and_automatic_adjustments_add_up():
    pricing = calculate_subscription_pricing(Decimal('100'), adjustment_percentage=5,
                                             adjustment_reason=REASON_LOYALTY_DISCOUNT,
                                             pet_count=3, is_discount_target=True)
    assert pricing.adjustment_percentage == Decimal('-10.00')
    assert pricing.final_price == Decimal('90.00')
    assert pricing.manual_percentage == Decimal('5')


def test_recorded_pet_count_recovers_manual_part_after_batch_shrinks():
    # Stored as -15 with the multi-pet reason when the client had three pets
    pricing = calculate_subscription_pricing(Decimal('100'), adjustment_percentage=-15,
                                             adjustment_reason=REASON_MULTI_PET_DISCOUNT,
                                             pet_count=1, is_discount_target=True,
                                             recorded_pet_count=3)
    assert pricing.manual_percentage == 0
    assert pricing.final_price == Decimal('100.00')
    assert pricing.adjustment_reason is None


def test_manual_adjustment_without_reason_is_labelled_other():
    pricing = calculate_subscription_pricing(Decimal('60'), adjustment_percentage=10)
    assert pricing.adjustment_reason == REASON_OTHER
    assert pricing.final_price == Decimal('66.00')


def test_combined_percentage_is_clamped_so_price_stays_non_negative():
    pricing = calculate_subscription_pricing(Decimal('40'), adjustment_percentage=-100,
                                             adjustment_reason=REASON_OTHER,
                                             pet_count=3, is_discount_target=True)
    assert pricing.adjustment_percentage == Decimal('-100.00')
    assert pricing.final_price == Decimal('0.00')


def test_aggregate_pricing():
    aggregate = aggregate_pricing(Decimal('100'), Decimal('95'))
    assert aggregate.adjustment_value == Decimal('-5.00')
    assert aggregate.adjustment_percentage == Decimal('-5.00')
    assert aggregate_pricing(0, 0).adjustment_percentage == 0
