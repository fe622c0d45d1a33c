"""
Fixed-bed breakthrough prediction using the Thomas model.

    C/C0 = 1 / (1 + exp(kTh * q0 * M / Q - kTh * C0 * t))

Units: C0 ug/L, q0 ug/g, M g GAC, Q L per operating day, t operating days,
kTh L/(ug*day). The product kTh*q0*M/Q is the dimensionless Thomas number,
which sets how sharp the mass-transfer zone is; it is taken from EBCT and
kTh is back-calculated from it. The 50% point of the curve is the
stoichiometric time q0*M/(C0*Q).

Reference: Thomas, H.C. (1944). Heterogeneous ion exchange in a flowing
system. J. Am. Chem. Soc. 66, 1664-1666.
"""
import copy
import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from pfas_app.knowledge_base.pfas_library import (
    COMPOUND_PROFILES,
    get_chain_length_factor,
    get_mcl,
    modeled_concentration,
)
from pfas_app.models.schemas import BreakthroughPoint, BreakthroughResult, SystemData, ThomasParameters
from pfas_app.services.capacity_engine import calculate_ebct
from pfas_app.services.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_BREAKTHROUGH_ASSUMPTIONS = {
    "curveIntervals": 200,
    "defaultHorizonDays": 365.0,
    "referenceThomasNumber": 10.0,
    "referenceEbctMin": 15.0,
    "thomasNumberRange": [3.0, 30.0],
    "defaultBreakthroughFraction": 0.10,
    "breakthroughFractionRange": [1e-4, 0.45],
    "fiftyPercentFraction": 0.5,
    "exhaustionFraction": 0.95,
    "baseConfidence": 0.8,
    "typicalCapacityRange": [0.5, 100.0],
    "atypicalCapacityPenalty": 0.85,
    "shortEbctMin": 10.0,
    "shortEbctPenalty": 0.9,
    "extrapolationPenalty": 0.9,
    "immediateBreakthroughPenalty": 0.9,
    "confidenceFloor": 0.05,
}


def build_breakthrough_assumptions(overrides: Optional[dict] = None) -> dict:
    assumptions = copy.deepcopy(DEFAULT_BREAKTHROUGH_ASSUMPTIONS)
    if overrides:
        assumptions.update(overrides)
    return assumptions


def regulatory_breakthrough_fraction(
    system: SystemData, compound: Optional[str] = None, assumptions: Optional[dict] = None
) -> float:
    """Effluent fraction C/C0 at which the first MCL is exceeded.

    For the aggregate curve this is the tightest MCL/concentration among
    regulated compounds above their MCL. Compounds at or below their MCL
    never exceed it, so the conventional 10% breakthrough is used instead.
    """
    if assumptions is None:
        assumptions = DEFAULT_BREAKTHROUGH_ASSUMPTIONS

    names = [compound] if compound is not None else list(system.pfas_compounds)
    ratios = []
    for name in names:
        concentration = system.pfas_compounds.get(name, 0.0)
        mcl = get_mcl(name)
        if mcl is not None and concentration > mcl:
            ratios.append(mcl / concentration)

    if not ratios:
        return assumptions["defaultBreakthroughFraction"]
    low, high = assumptions["breakthroughFractionRange"]
    return max(low, min(high, min(ratios)))


def thomas_time(fraction: float, thomas_number: float, rate: float) -> float:
    """Closed-form Thomas inverse: time at which C/C0 reaches fraction."""
    return max(0.0, (thomas_number - math.log(1.0 / fraction - 1.0)) / rate)


def _crossing_time(
    times: np.ndarray, fractions: np.ndarray, threshold: float, thomas_number: float, rate: float
) -> Tuple[float, bool]:
    hits = np.nonzero(fractions >= threshold)[0]
    if hits.size == 0:
        return thomas_time(threshold, thomas_number, rate), True

    i = int(hits[0])
    if i == 0:
        return 0.0, False
    t0, t1 = times[i - 1], times[i]
    y0, y1 = fractions[i - 1], fractions[i]
    return float(t0 + (threshold - y0) / (y1 - y0) * (t1 - t0)), False


def calculate_breakthrough(
    system: SystemData,
    adjusted_capacity: float,
    horizon_days: Optional[float] = None,
    compound: Optional[str] = None,
    assumptions: Optional[dict] = None,
) -> BreakthroughResult:
    if assumptions is None:
        assumptions = DEFAULT_BREAKTHROUGH_ASSUMPTIONS
    if horizon_days is None:
        horizon_days = assumptions["defaultHorizonDays"]

    if not math.isfinite(adjusted_capacity) or adjusted_capacity <= 0:
        raise InvalidConfigurationError(
            f"adjusted_capacity must be a positive number, got {adjusted_capacity}", field="adjusted_capacity"
        )
    if not math.isfinite(horizon_days) or horizon_days <= 0:
        raise InvalidConfigurationError(
            f"horizon_days must be greater than zero, got {horizon_days}", field="horizon_days"
        )

    ebct = calculate_ebct(system)
    if compound is None:
        influent = system.total_pfas_ng_l
    else:
        influent = system.pfas_compounds.get(compound, 0.0)
    c0 = modeled_concentration(influent) / 1000
    q0 = adjusted_capacity
    gac_mass = system.bed_volume * system.gac_density * 1000
    flow_per_day = system.flow_rate * system.operating_hours_per_day * 1000
    bed_liters = system.bed_volume * 1000

    low, high = assumptions["thomasNumberRange"]
    thomas_number = min(high, max(low, assumptions["referenceThomasNumber"] * ebct / assumptions["referenceEbctMin"]))
    k_th = thomas_number * flow_per_day / (q0 * gac_mass)
    stoichiometric_time = q0 * gac_mass / (c0 * flow_per_day)
    rate = k_th * c0

    times = np.linspace(0.0, horizon_days, assumptions["curveIntervals"] + 1)
    fractions = 1.0 / (1.0 + np.exp(thomas_number - rate * times))
    bed_volumes = flow_per_day * times / bed_liters
    curve: List[BreakthroughPoint] = [
        BreakthroughPoint(
            time_days=float(t),
            bed_volumes=float(bv),
            effluent_fraction=float(f),
            effluent_concentration=float(f * influent),
        )
        for t, bv, f in zip(times, bed_volumes, fractions)
    ]

    breakthrough_fraction = regulatory_breakthrough_fraction(system, compound, assumptions)
    breakthrough_time, bt_extrapolated = _crossing_time(
        times, fractions, breakthrough_fraction, thomas_number, rate
    )
    fifty_percent_time, fifty_extrapolated = _crossing_time(
        times, fractions, assumptions["fiftyPercentFraction"], thomas_number, rate
    )
    exhaustion_time, exhaustion_extrapolated = _crossing_time(
        times, fractions, assumptions["exhaustionFraction"], thomas_number, rate
    )

    label = compound or "Total PFAS"
    evidence = [
        f"Thomas model with q0 = {q0:.2f} ug/g, {gac_mass / 1000:.0f} kg GAC, {flow_per_day / 1000:.0f} m3/day",
        f"Thomas number {thomas_number:.1f} from {ebct:.1f} min EBCT (kTh = {k_th:.4g} L/ug/day)",
        f"{label} breakthrough threshold at {breakthrough_fraction * 100:.2f}% of influent",
    ]

    confidence = assumptions["baseConfidence"]
    cap_low, cap_high = assumptions["typicalCapacityRange"]
    if q0 < cap_low or q0 > cap_high:
        confidence *= assumptions["atypicalCapacityPenalty"]
        evidence.append(f"Capacity {q0:.2f} ug/g is outside the typical {cap_low}-{cap_high} ug/g range")
    if ebct < assumptions["shortEbctMin"]:
        confidence *= assumptions["shortEbctPenalty"]
        evidence.append(f"EBCT of {ebct:.1f} min is short for PFAS; breakthrough may come earlier")
    if bt_extrapolated or fifty_extrapolated or exhaustion_extrapolated:
        confidence *= assumptions["extrapolationPenalty"]
        evidence.append(f"Milestones beyond the {horizon_days:.0f}-day horizon projected from the Thomas model")
        logger.info("Breakthrough: %s milestones extrapolated past %.0f days", label, horizon_days)
    if breakthrough_time == 0.0:
        confidence *= assumptions["immediateBreakthroughPenalty"]
        evidence.append(f"{label} effluent exceeds the breakthrough threshold from the first day of service")

    return BreakthroughResult(
        compound=compound,
        influent_concentration=influent,
        breakthrough_fraction=breakthrough_fraction,
        curve=curve,
        breakthrough_time=breakthrough_time,
        fifty_percent_time=fifty_percent_time,
        exhaustion_time=exhaustion_time,
        total_bed_volumes=float(bed_volumes[-1]),
        thomas_parameters=ThomasParameters(k_th=k_th, q0=q0, thomas_number=thomas_number),
        confidence=max(assumptions["confidenceFloor"], min(1.0, confidence)),
        evidence=evidence + [f"Stoichiometric (50%) time {stoichiometric_time:.1f} operating days"],
    )


def calculate_multi_compound_breakthrough(
    system: SystemData,
    adjusted_capacity: float,
    horizon_days: Optional[float] = None,
    assumptions: Optional[dict] = None,
) -> Dict[str, BreakthroughResult]:
    """One independent curve per detected compound.

    Each compound gets its concentration share of the bed capacity scaled by
    a chain-length factor (longer chains adsorb more strongly). Curves share
    no state, so displacement of short chains by long chains is not modeled.
    """
    detected = system.detected_compounds
    total = sum(detected.values())
    order = list(COMPOUND_PROFILES)
    names = sorted(detected, key=lambda name: (order.index(name) if name in order else len(order), name))

    results: Dict[str, BreakthroughResult] = {}
    for name in names:
        compound_capacity = adjusted_capacity * (detected[name] / total) * get_chain_length_factor(name)
        results[name] = calculate_breakthrough(system, compound_capacity, horizon_days, name, assumptions)
    return results


class BreakthroughEngine:
    def __init__(self, assumptions: Optional[dict] = None):
        self.assumptions = build_breakthrough_assumptions(assumptions)

    def calculate_breakthrough(
        self, system: SystemData, adjusted_capacity: float, horizon_days: Optional[float] = None
    ) -> BreakthroughResult:
        return calculate_breakthrough(system, adjusted_capacity, horizon_days, None, self.assumptions)

    def calculate_multi_compound_breakthrough(
        self, system: SystemData, adjusted_capacity: float, horizon_days: Optional[float] = None
    ) -> Dict[str, BreakthroughResult]:
        return calculate_multi_compound_breakthrough(system, adjusted_capacity, horizon_days, self.assumptions)
