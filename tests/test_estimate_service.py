"""
Tests for the quick shipping estimate.
"""
import pytest

from logistics_oms.schemas.shipping import EstimateRequest
from logistics_oms.services.estimate_service import EstimateTariff, get_quick_estimate, round_half_up


def test_standard_same_zone():
    estimate = get_quick_estimate(EstimateRequest(
        origin_postal_code="400001", destination_postal_code="400070", weight_kg=2.0,
    ))

    # 50 base + 15 short haul + 2 kg * 20
    assert estimate.min_cost == 84
    assert estimate.max_cost == 126
    assert estimate.estimated_days == "3-5"
    assert estimate.distance_km == 50
    assert estimate.currency == "INR"
    assert estimate.is_estimate is True


def test_express_national():
    estimate = get_quick_estimate(EstimateRequest(
        origin_postal_code="400001", destination_postal_code="110001", weight_kg=1.0, express=True,
    ))

    # 100 base + 30 long haul + 1 kg * 20
    assert estimate.min_cost == 120
    assert estimate.max_cost == 180
    assert estimate.estimated_days == "1-2"
    assert estimate.distance_km == 800


def test_regional_distance_is_short_haul():
    estimate = get_quick_estimate(EstimateRequest(
        origin_postal_code="400001", destination_postal_code="411001", weight_kg=0,
    ))

    assert estimate.distance_km == 300
    # 50 + 15
    assert (estimate.min_cost, estimate.max_cost) == (52, 78)


def test_half_kilo_fractions_round_up():
    estimate = get_quick_estimate(EstimateRequest(
        origin_postal_code="400001", destination_postal_code="400070", weight_kg=0.175,
    ))

    # 50 + 15 + 3.5 = 68.5 rounds to 69, band 55.2 and 82.8
    assert (estimate.min_cost, estimate.max_cost) == (55, 83)


@pytest.mark.parametrize("value, expected", [(0.5, 1), (2.5, 3), (68.5, 69), (84.4, 84), (126.00000000000001, 126)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_tariff_from_settings():
    class _Settings:
        ESTIMATE_BASE_STANDARD = 10.0
        ESTIMATE_BASE_EXPRESS = 20.0
        ESTIMATE_PER_KG = 1.0
        ESTIMATE_SHORT_HAUL_RATE = 0.0
        ESTIMATE_LONG_HAUL_RATE = 0.0
        ESTIMATE_SPREAD = 0.0
        SHIPPING_CURRENCY = "USD"

    tariff = EstimateTariff.from_settings(_Settings)
    estimate = get_quick_estimate(
        EstimateRequest(origin_postal_code="10001", destination_postal_code="10002", weight_kg=5.0),
        tariff,
    )

    assert estimate.min_cost == estimate.max_cost == 15
    assert estimate.currency == "USD"


def test_negative_weight_is_rejected():
    with pytest.raises(ValueError):
        EstimateRequest(origin_postal_code="400001", destination_postal_code="400002", weight_kg=-1)
