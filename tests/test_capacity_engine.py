"""
Capacity engine tests: EBCT, Freundlich capacity, competition, removal efficiency
"""
import math

import pytest

from pfas_app.services.capacity_engine import (
    CapacityEngine,
    calculate_ebct,
    freundlich_capacity,
    mixture_parameters,
)
from pfas_app.services.errors import InvalidConfigurationError


@pytest.fixture
def engine():
    return CapacityEngine()


# ══════════════════════════════════════════════════════════════
#  EBCT
# ══════════════════════════════════════════════════════════════

class TestEBCT:
    def test_reference_system(self, system):
        # 10 m3 / 100 m3/h * 60 = 6 min
        assert calculate_ebct(system) == pytest.approx(6.0)

    def test_scales_with_bed_volume(self, make_system):
        assert calculate_ebct(make_system(bed_volume=25.0)) == pytest.approx(15.0)

    def test_zero_flow_raises(self, make_system):
        with pytest.raises(InvalidConfigurationError):
            calculate_ebct(make_system(flow_rate=0.0))

    def test_negative_flow_raises(self, make_system):
        with pytest.raises(InvalidConfigurationError):
            calculate_ebct(make_system(flow_rate=-5.0))

    def test_zero_bed_volume_raises(self, make_system):
        with pytest.raises(InvalidConfigurationError):
            calculate_ebct(make_system(bed_volume=0.0))


# ══════════════════════════════════════════════════════════════
#  Isotherm capacity
# ══════════════════════════════════════════════════════════════

class TestFreundlich:
    def test_square_root_isotherm(self):
        assert freundlich_capacity(100.0, 1.0, 2.0) == pytest.approx(10.0)

    def test_mixture_of_single_class(self):
        k, n, shares = mixture_parameters({"PFOS": 10.0, "PFHxS": 5.0})
        assert k == pytest.approx(1.6)
        assert n == pytest.approx(2.0)
        assert shares == {"long_chain_sulfonate": pytest.approx(1.0)}

    def test_mixture_weighted_by_concentration(self):
        k, _, shares = mixture_parameters({"PFOS": 50.0, "PFBS": 50.0})
        assert k == pytest.approx((1.6 + 0.45) / 2)
        assert shares["short_chain"] == pytest.approx(0.5)

    def test_empty_mixture_uses_default_class(self):
        k, n, shares = mixture_parameters({"PFOA": 0.0})
        assert shares == {"mixed": 1.0}
        assert k > 0 and n > 0


class TestAnalyzeCapacity:
    def test_reference_system(self, engine, system):
        result = engine.analyze_capacity(system)
        assert result.base_capacity > result.adjusted_capacity > 0
        assert result.toc_factor == pytest.approx(0.85)
        assert result.sulfate_factor == pytest.approx(0.9)
        assert result.system_factor == 1.0
        assert result.confidence == pytest.approx(0.8)
        assert len(result.evidence) >= 4

    def test_lower_toc_gives_higher_or_equal_capacity(self, engine, make_system):
        capacities = [
            engine.analyze_capacity(make_system(toc=toc)).adjusted_capacity
            for toc in [0.0, 1.0, 3.0, 8.0, 15.0, 40.0]
        ]
        assert all(a >= b for a, b in zip(capacities, capacities[1:]))
        assert capacities[0] > capacities[-1]

    def test_lower_sulfate_gives_higher_or_equal_capacity(self, engine, make_system):
        capacities = [
            engine.analyze_capacity(make_system(sulfate=sulfate)).adjusted_capacity
            for sulfate in [0.0, 25.0, 100.0, 150.0, 400.0, 1000.0]
        ]
        assert all(a >= b for a, b in zip(capacities, capacities[1:]))

    def test_fluidized_bed_factor(self, engine, make_system):
        fixed = engine.analyze_capacity(make_system())
        fluidized = engine.analyze_capacity(make_system(system_type="Fluidized Bed"))
        assert fluidized.adjusted_capacity == pytest.approx(fixed.adjusted_capacity * 1.1)
        assert any("Fluidized Bed" in line for line in fluidized.evidence)

    def test_extreme_chemistry_degrades_confidence(self, engine, make_system):
        normal = engine.analyze_capacity(make_system())
        extreme = engine.analyze_capacity(make_system(toc=50.0, sulfate=1000.0))
        assert 0 < extreme.confidence < normal.confidence
        assert any("calibration range" in line for line in extreme.evidence)

    def test_zero_pfas_stays_positive(self, engine, zero_system):
        result = engine.analyze_capacity(zero_system)
        assert result.adjusted_capacity > 0
        assert not math.isnan(result.base_capacity)
        assert any("detection floor" in line for line in result.evidence)

    def test_overrides_change_floor(self, make_system):
        engine = CapacityEngine({"tocFactorFloor": 0.9})
        result = engine.analyze_capacity(make_system(toc=30.0))
        assert result.toc_factor == pytest.approx(0.9)


# ══════════════════════════════════════════════════════════════
#  Removal efficiency
# ══════════════════════════════════════════════════════════════

class TestRemovalEfficiency:
    def test_reference_system_meets_target(self, engine, system):
        result = engine.calculate_removal_efficiency(system)
        assert 95.0 < result.efficiency_percent <= 100.0
        assert result.confidence == pytest.approx(0.85)

    @pytest.mark.parametrize("overrides", [
        {},
        {"ebct": 0.5},
        {"ebct": 120.0, "gac_iodine_number": 1400.0},
        {"gac_iodine_number": 0.0, "temperature": 0.0, "ph": 11.0},
        {"pfas_compounds": {"PFOA": 0.0}},
        {"toc": 100.0, "sulfate": 2000.0},
    ])
    def test_always_within_bounds(self, engine, make_system, overrides):
        result = engine.calculate_removal_efficiency(make_system(**overrides))
        assert 0 < result.efficiency_percent <= 100
        assert 0 < result.confidence <= 1

    def test_longer_ebct_removes_more(self, engine, make_system):
        short = engine.calculate_removal_efficiency(make_system(ebct=5.0))
        long = engine.calculate_removal_efficiency(make_system(ebct=20.0))
        assert long.efficiency_percent > short.efficiency_percent

    def test_short_ebct_and_low_iodine_reduce_confidence(self, engine, make_system):
        result = engine.calculate_removal_efficiency(make_system(ebct=5.0, gac_iodine_number=600.0))
        assert result.confidence == pytest.approx(0.85 * 0.9 * 0.9)

    def test_falls_back_to_calculated_ebct(self, engine, make_system):
        result = engine.calculate_removal_efficiency(make_system(ebct=0.0))
        assert "6.0 min EBCT" in result.evidence[0]
