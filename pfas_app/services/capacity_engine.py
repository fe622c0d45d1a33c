"""
GAC adsorption capacity model.

Capacity is a Freundlich isotherm evaluated at the influent total PFAS
concentration, using concentration-weighted K and n across the compound
classes present, then reduced for background organics (TOC) and sulfate
that compete for adsorption sites. Capacities are ug PFAS per g GAC.

Reference: Freundlich, H. (1906). Over the adsorption in solution.
"""
import copy
import logging
import math
from typing import Dict, Optional, Tuple

from pfas_app.knowledge_base.pfas_library import (
    DEFAULT_ISOTHERM_CLASS,
    FREUNDLICH_PARAMETERS,
    get_isotherm_class,
    modeled_concentration,
)
from pfas_app.models.schemas import CapacityResult, RemovalEfficiencyResult, SystemData
from pfas_app.services.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_CAPACITY_ASSUMPTIONS = {
    "tocReferenceMgL": 20.0,
    "tocFactorFloor": 0.4,
    "sulfateReferenceMgL": 500.0,
    "sulfateFactorFloor": 0.7,
    "systemTypeFactors": {
        "Fixed Bed": 1.0,
        "Moving Bed": 1.0,
        "Fluidized Bed": 1.1,
    },
    "minAdjustedCapacity": 0.05,
    "baseConfidence": 0.8,
    "calibrationTocMaxMgL": 5.0,
    "calibrationSulfateMaxMgL": 100.0,
    "calibrationConcentrationRange": [10.0, 5000.0],
    "outOfRangeConcentrationPenalty": 0.9,
    "deviationSensitivity": 0.5,
    "confidenceFloor": 0.1,
    "removalEfficiency": {
        "referenceEbctMin": 15.0,
        "referenceTransferUnits": 4.0,
        "capacityHalfSaturation": 0.25,
        "referenceIodineNumber": 1000.0,
        "iodineFactorRange": [0.6, 1.1],
        "optimalPhRange": [6.0, 8.0],
        "offOptimalPhFactor": 0.8,
        "maxRemovalFraction": 0.999,
        "baseConfidence": 0.85,
        "shortEbctMin": 10.0,
        "lowIodineNumber": 800.0,
        "penalty": 0.9,
        "confidenceFloor": 0.1,
    },
}


def build_capacity_assumptions(overrides: Optional[dict] = None) -> dict:
    assumptions = copy.deepcopy(DEFAULT_CAPACITY_ASSUMPTIONS)
    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(assumptions.get(key), dict):
                assumptions[key].update(value)
            else:
                assumptions[key] = value
    return assumptions


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_ebct(system: SystemData) -> float:
    """Empty-bed contact time in minutes."""
    if system.flow_rate <= 0:
        raise InvalidConfigurationError(
            f"flow_rate must be greater than zero to compute EBCT, got {system.flow_rate}", field="flow_rate"
        )
    if system.bed_volume <= 0:
        raise InvalidConfigurationError(
            f"bed_volume must be greater than zero to compute EBCT, got {system.bed_volume}", field="bed_volume"
        )
    return system.bed_volume / system.flow_rate * 60


def freundlich_capacity(concentration: float, k: float, n: float) -> float:
    """q = K * C^(1/n)."""
    return k * concentration ** (1.0 / n)


def mixture_parameters(compounds: Dict[str, float]) -> Tuple[float, float, Dict[str, float]]:
    """Concentration-weighted Freundlich K and n over the detected compounds.

    Returns (k, n, class_shares). With nothing detected the default mixture
    class is used.
    """
    detected = {name: conc for name, conc in compounds.items() if conc > 0}
    total = sum(detected.values())
    if total <= 0:
        params = FREUNDLICH_PARAMETERS[DEFAULT_ISOTHERM_CLASS]
        return params["k"], params["n"], {DEFAULT_ISOTHERM_CLASS: 1.0}

    class_shares: Dict[str, float] = {}
    for name, conc in detected.items():
        isotherm_class = get_isotherm_class(name)
        class_shares[isotherm_class] = class_shares.get(isotherm_class, 0.0) + conc / total

    k = sum(FREUNDLICH_PARAMETERS[c]["k"] * share for c, share in class_shares.items())
    n = sum(FREUNDLICH_PARAMETERS[c]["n"] * share for c, share in class_shares.items())
    return k, n, class_shares


def competitive_adjustment_factors(toc: float, sulfate: float, assumptions: dict) -> Tuple[float, float]:
    toc_factor = max(assumptions["tocFactorFloor"], 1 - toc / assumptions["tocReferenceMgL"])
    sulfate_factor = max(assumptions["sulfateFactorFloor"], 1 - sulfate / assumptions["sulfateReferenceMgL"])
    return toc_factor, sulfate_factor


def _capacity_confidence(system: SystemData, concentration: float, assumptions: dict, evidence: list) -> float:
    confidence = assumptions["baseConfidence"]
    sensitivity = assumptions["deviationSensitivity"]

    toc_max = assumptions["calibrationTocMaxMgL"]
    toc_deviation = max(0.0, system.toc - toc_max) / toc_max
    if toc_deviation > 0:
        confidence /= 1 + sensitivity * toc_deviation
        evidence.append(f"TOC of {system.toc:.1f} mg/L is above the {toc_max:.0f} mg/L isotherm calibration range")

    sulfate_max = assumptions["calibrationSulfateMaxMgL"]
    sulfate_deviation = max(0.0, system.sulfate - sulfate_max) / sulfate_max
    if sulfate_deviation > 0:
        confidence /= 1 + sensitivity * sulfate_deviation
        evidence.append(
            f"Sulfate of {system.sulfate:.0f} mg/L is above the {sulfate_max:.0f} mg/L isotherm calibration range"
        )

    low, high = assumptions["calibrationConcentrationRange"]
    if concentration < low or concentration > high:
        confidence *= assumptions["outOfRangeConcentrationPenalty"]
        evidence.append(
            f"Total PFAS of {concentration:.1f} ng/L is outside the {low:.0f}-{high:.0f} ng/L calibration range"
        )

    return _clamp(confidence, assumptions["confidenceFloor"], 1.0)


def analyze_capacity(system: SystemData, assumptions: Optional[dict] = None) -> CapacityResult:
    if assumptions is None:
        assumptions = DEFAULT_CAPACITY_ASSUMPTIONS

    total = system.total_pfas_ng_l
    concentration = modeled_concentration(total)
    k, n, class_shares = mixture_parameters(system.pfas_compounds)
    base_capacity = freundlich_capacity(concentration, k, n)

    toc_factor, sulfate_factor = competitive_adjustment_factors(system.toc, system.sulfate, assumptions)
    system_factor = assumptions["systemTypeFactors"].get(system.system_type, 1.0)
    adjusted_capacity = max(
        assumptions["minAdjustedCapacity"],
        base_capacity * toc_factor * sulfate_factor * system_factor,
    )

    mix = ", ".join(f"{name} {share * 100:.0f}%" for name, share in sorted(class_shares.items()))
    evidence = [
        f"Freundlich isotherm q = K*C^(1/n) with K = {k:.3f}, n = {n:.2f} ({mix})",
        f"Base capacity {base_capacity:.2f} ug/g at {concentration:.1f} ng/L total PFAS",
        f"TOC competition factor {toc_factor:.2f} at {system.toc:.1f} mg/L TOC",
        f"Sulfate competition factor {sulfate_factor:.2f} at {system.sulfate:.0f} mg/L sulfate",
    ]
    if total < concentration:
        evidence.append(f"No PFAS above {concentration:.1f} ng/L; isotherm evaluated at the model detection floor")
    if system_factor != 1.0:
        evidence.append(f"{system.system_type} system factor {system_factor:.2f} applied")

    confidence = _capacity_confidence(system, total, assumptions, evidence)
    logger.debug(
        "Capacity: base=%.3f adjusted=%.3f ug/g (toc=%.2f sulfate=%.2f) confidence=%.2f",
        base_capacity, adjusted_capacity, toc_factor, sulfate_factor, confidence,
    )

    return CapacityResult(
        base_capacity=base_capacity,
        adjusted_capacity=adjusted_capacity,
        freundlich_k=k,
        freundlich_n=n,
        toc_factor=toc_factor,
        sulfate_factor=sulfate_factor,
        system_factor=system_factor,
        confidence=confidence,
        evidence=evidence,
    )


def calculate_removal_efficiency(
    system: SystemData,
    capacity: Optional[CapacityResult] = None,
    assumptions: Optional[dict] = None,
) -> RemovalEfficiencyResult:
    """Percent removal from a transfer-unit model: 1 - exp(-NTU).

    NTU scales with target EBCT and is reduced by media quality (iodine
    number), pH, temperature and how much adsorption capacity remains.
    """
    if assumptions is None:
        assumptions = DEFAULT_CAPACITY_ASSUMPTIONS
    if capacity is None:
        capacity = analyze_capacity(system, assumptions)
    params = assumptions["removalEfficiency"]

    ebct = system.ebct if system.ebct > 0 else calculate_ebct(system)
    iodine_low, iodine_high = params["iodineFactorRange"]
    iodine_factor = _clamp(system.gac_iodine_number / params["referenceIodineNumber"], iodine_low, iodine_high)
    ph_low, ph_high = params["optimalPhRange"]
    ph_in_range = ph_low <= system.ph <= ph_high
    ph_factor = 1.0 if ph_in_range else params["offOptimalPhFactor"]
    temperature_factor = _clamp(0.7 + system.temperature / 25 * 0.3, 0.1, 1.0)
    q = capacity.adjusted_capacity
    capacity_factor = q / (q + params["capacityHalfSaturation"])

    transfer_units = (
        params["referenceTransferUnits"] * (ebct / params["referenceEbctMin"])
        * iodine_factor * ph_factor * temperature_factor * capacity_factor
    )
    fraction = min(params["maxRemovalFraction"], 1 - math.exp(-transfer_units))
    efficiency_percent = fraction * 100

    evidence = [
        f"{transfer_units:.2f} transfer units at {ebct:.1f} min EBCT",
        f"Iodine number {system.gac_iodine_number:.0f} mg/g (factor {iodine_factor:.2f})",
        f"Temperature {system.temperature:.1f} C (factor {temperature_factor:.2f})",
    ]
    confidence = params["baseConfidence"]
    if ebct < params["shortEbctMin"]:
        confidence *= params["penalty"]
        evidence.append(f"EBCT below {params['shortEbctMin']:.0f} min reduces PFAS mass transfer")
    if system.gac_iodine_number < params["lowIodineNumber"]:
        confidence *= params["penalty"]
        evidence.append("Low iodine number indicates limited micropore volume")
    if not ph_in_range:
        confidence *= params["penalty"]
        evidence.append(f"pH {system.ph:.1f} is outside the optimal {ph_low:.0f}-{ph_high:.0f} range")

    return RemovalEfficiencyResult(
        efficiency_percent=efficiency_percent,
        transfer_units=transfer_units,
        confidence=_clamp(confidence, params["confidenceFloor"], 1.0),
        evidence=evidence,
    )


class CapacityEngine:
    def __init__(self, assumptions: Optional[dict] = None):
        self.assumptions = build_capacity_assumptions(assumptions)

    def calculate_ebct(self, system: SystemData) -> float:
        return calculate_ebct(system)

    def analyze_capacity(self, system: SystemData) -> CapacityResult:
        return analyze_capacity(system, self.assumptions)

    def calculate_removal_efficiency(
        self, system: SystemData, capacity: Optional[CapacityResult] = None
    ) -> RemovalEfficiencyResult:
        return calculate_removal_efficiency(system, capacity, self.assumptions)
