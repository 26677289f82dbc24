import pytest
from decimal import Decimal
from dexgrid.core.math import (
    build_grid,
    calculate_price_step,
    allocate_investment,
    calculate_amount_out_min,
    slippage_percent_to_bps,
    calculate_deadline,
    to_base_units,
    from_base_units,
    MathError
)

def test_build_grid_standard():
    levels = build_grid(1000.0, 2000.0, 5)
    assert levels == [1000.0, 1250.0, 1500.0, 1750.0, 2000.0]

def test_build_grid_constant_step_and_exact_bounds():
    lower, upper, n = 0.37, 1.91, 7
    levels = build_grid(lower, upper, n)
    step = calculate_price_step(lower, upper, n)

    assert len(levels) == n
    assert levels[0] == lower
    assert levels[-1] == upper
    for a, b in zip(levels, levels[1:]):
        assert b - a == pytest.approx(step)
        assert a < b

def test_build_grid_validation():
    with pytest.raises(MathError, match="at least 2"):
        build_grid(100.0, 200.0, 1)

    with pytest.raises(MathError, match="Lower price must be > 0"):
        build_grid(0, 200.0, 10)

    with pytest.raises(MathError, match="must be less than upper"):
        build_grid(200.0, 100.0, 10)

def test_allocate_investment_even():
    assert allocate_investment(500, 5) == [100] * 5

def test_allocate_investment_remainder_goes_to_last_level():
    allocations = allocate_investment(1003, 4)
    assert allocations == [250, 250, 250, 253]
    assert sum(allocations) == 1003

def test_allocate_investment_validation():
    with pytest.raises(MathError):
        allocate_investment(0, 5)
    with pytest.raises(MathError):
        allocate_investment(100, 1)

@pytest.mark.parametrize("bps,expected", [
    (0, 1_000_000),
    (50, 995_000),
    (500, 950_000),
    (10_000, 0),
])
def test_amount_out_min_boundaries(bps, expected):
    assert calculate_amount_out_min(1_000_000, bps) == expected

def test_amount_out_min_floors():
    # 999 * 9950 / 10000 = 994.005
    assert calculate_amount_out_min(999, 50) == 994

def test_amount_out_min_rejects_out_of_range_slippage():
    with pytest.raises(MathError):
        calculate_amount_out_min(1000, 10_001)
    with pytest.raises(MathError):
        calculate_amount_out_min(1000, -1)

def test_slippage_percent_to_bps():
    assert slippage_percent_to_bps(0.5) == 50
    assert slippage_percent_to_bps(1) == 100
    assert slippage_percent_to_bps(100) == 10_000
    with pytest.raises(MathError):
        slippage_percent_to_bps(101)

def test_deadline_default_is_twenty_minutes():
    assert calculate_deadline(now=1_700_000_000.7) == 1_700_000_000 + 1200
    with pytest.raises(MathError):
        calculate_deadline(0)

def test_unit_conversion():
    assert to_base_units("1.5", 6) == 1_500_000
    assert to_base_units(100, 6) == 100_000_000
    assert from_base_units(1_500_000, 6) == Decimal("1.5")
    assert from_base_units(10**18, 18) == Decimal(1)
