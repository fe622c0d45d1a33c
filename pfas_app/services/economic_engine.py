"""
GAC lifespan projection, Monte Carlo lifespan uncertainty and media economics.

Lifespans are calendar months. The Monte Carlo draws from a
numpy Generator built per call from an explicit seed, so two runs with the
same seed produce identical samples.
"""
import copy
import logging
from typing import List, Optional

import numpy as np

from pfas_app.knowledge_base.pfas_library import modeled_concentration
from pfas_app.models.schemas import (
    BreakthroughResult,
    CapacityResult,
    EconomicAnalysis,
    MonteCarloResult,
    SystemData,
)
from pfas_app.services.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_ECONOMIC_ASSUMPTIONS = {
    "monteCarloIterations": 5000,
    "capacityCoefficientOfVariation": 0.09,
    "concentrationCoefficientOfVariation": 0.10,
    "confidenceSpreadGain": 2.0,
    "minLifespanMonths": 1.0,
    # Planning ceiling for any bed, and the life of a bed with no PFAS detected
    "maxLifespanMonths": 120.0,
    "gallonsPerCubicMeter": 264.172,
    "defaultChangeoutMonths": 12.0,
    "costBandsPerMG": {"low": 250.0, "moderate": 750.0},
    "lifespanBandsMonths": {"critical": 12.0, "moderate": 24.0},
    "ebctRangeMin": [10.0, 20.0],
    "confidenceFloor": 0.05,
}


def build_economic_assumptions(overrides: Optional[dict] = None) -> dict:
    assumptions = copy.deepcopy(DEFAULT_ECONOMIC_ASSUMPTIONS)
    if overrides:
        assumptions.update(overrides)
    return assumptions


def _operating_days_to_months(days: float, system: SystemData) -> float:
    return days * 12 / system.operating_days_per_year


def mass_balance_lifespan(
    system: SystemData, capacity_result: CapacityResult, assumptions: Optional[dict] = None
) -> float:
    """Stoichiometric bed life in months: GAC loading capacity over PFAS mass loading.

    Capped at the planning ceiling, which is also returned outright when no
    PFAS is detected.
    """
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    if not system.detected_compounds:
        return assumptions["maxLifespanMonths"]
    gac_mass_g = system.bed_volume * system.gac_density * 1000
    influent_ug_per_l = modeled_concentration(system.total_pfas_ng_l) / 1000
    flow_l_per_day = system.flow_rate * system.operating_hours_per_day * 1000
    days = capacity_result.adjusted_capacity * gac_mass_g / (influent_ug_per_l * flow_l_per_day)
    months = _operating_days_to_months(days, system) / system.safety_factor
    return min(assumptions["maxLifespanMonths"], months)


def project_lifespan(
    capacity_result: CapacityResult,
    breakthrough_result: BreakthroughResult,
    system: SystemData,
    assumptions: Optional[dict] = None,
) -> float:
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    if not system.detected_compounds:
        logger.info(
            "Economics: no PFAS detected, lifespan set to the %.0f-month ceiling", assumptions["maxLifespanMonths"]
        )
        return assumptions["maxLifespanMonths"]
    breakthrough_months = (
        _operating_days_to_months(breakthrough_result.breakthrough_time, system) / system.safety_factor
    )
    months = min(breakthrough_months, mass_balance_lifespan(system, capacity_result, assumptions))
    return round(max(assumptions["minLifespanMonths"], months), 2)


def run_monte_carlo(
    system: SystemData,
    capacity_result: CapacityResult,
    iterations: Optional[int] = None,
    baseline_months: Optional[float] = None,
    seed: Optional[int] = None,
    assumptions: Optional[dict] = None,
) -> MonteCarloResult:
    """Sample lifespan under capacity and influent-concentration uncertainty.

    Both inputs get log-normal multiplicative noise with unit mean. The
    capacity spread widens as capacity confidence drops. Each sample
    rescales the baseline lifespan by capacity_ratio / concentration_ratio,
    which is the mass-balance dependence of bed life on those inputs.
    Baseline and samples are capped at maxLifespanMonths.
    """
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    if iterations is None:
        iterations = assumptions["monteCarloIterations"]
    if iterations <= 0:
        raise InvalidConfigurationError(
            f"Monte Carlo iterations must be greater than zero, got {iterations}", field="iterations"
        )
    if baseline_months is None:
        baseline_months = mass_balance_lifespan(system, capacity_result, assumptions)
    max_months = assumptions["maxLifespanMonths"]
    baseline_months = min(max_months, baseline_months)
    rng = np.random.default_rng(seed)

    capacity_sigma = assumptions["capacityCoefficientOfVariation"] * (
        1 + assumptions["confidenceSpreadGain"] * (1 - capacity_result.confidence)
    )
    concentration_sigma = assumptions["concentrationCoefficientOfVariation"]

    z = rng.standard_normal((iterations, 2))
    capacity_ratio = np.exp(capacity_sigma * z[:, 0] - 0.5 * capacity_sigma ** 2)
    concentration_ratio = np.exp(concentration_sigma * z[:, 1] - 0.5 * concentration_sigma ** 2)
    samples = np.minimum(max_months, baseline_months * capacity_ratio / concentration_ratio)

    p5, p10, p90, p95 = np.percentile(samples, [5, 10, 90, 95])
    result = MonteCarloResult(
        iterations=iterations,
        seed=seed,
        mean=float(np.mean(samples)),
        std_dev=float(np.std(samples)),
        p5=float(p5),
        p10=float(p10),
        p90=float(p90),
        p95=float(p95),
    )
    logger.debug(
        "Monte Carlo: %d samples mean=%.2f std=%.2f p5=%.2f p95=%.2f months",
        iterations, result.mean, result.std_dev, result.p5, result.p95,
    )
    return result


def annual_flow_million_gallons(system: SystemData, assumptions: Optional[dict] = None) -> float:
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    cubic_meters = system.flow_rate * system.operating_hours_per_day * system.operating_days_per_year
    return cubic_meters * assumptions["gallonsPerCubicMeter"] / 1_000_000


def changeout_cost(system: SystemData) -> float:
    media_cost = system.bed_volume * system.gac_density * system.gac_cost_per_kg
    return media_cost + system.replacement_cost + system.labor_cost + system.disposal_cost


def annual_media_cost(system: SystemData, lifespan_months: float) -> float:
    if lifespan_months <= 0:
        raise InvalidConfigurationError(
            f"lifespan_months must be greater than zero, got {lifespan_months}", field="lifespan_months"
        )
    return changeout_cost(system) * 12 / lifespan_months


def cost_per_million_gallons(
    system: SystemData, lifespan_months: Optional[float] = None, assumptions: Optional[dict] = None
) -> float:
    """Annualized change-out cost per million gallons treated.

    Without a projected lifespan the media is assumed to be changed once a year.
    """
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    if lifespan_months is None:
        lifespan_months = assumptions["defaultChangeoutMonths"]
    flow_mg = annual_flow_million_gallons(system, assumptions)
    if flow_mg <= 0:
        raise InvalidConfigurationError("Annual treated flow must be greater than zero", field="flow_rate")
    return annual_media_cost(system, lifespan_months) / flow_mg


def capital_avoidance(projected_lifespan_months: float, system: SystemData) -> float:
    return (system.replacement_cost + system.labor_cost) * (projected_lifespan_months / 12)


def generate_key_findings(
    system: SystemData,
    projected_lifespan_months: float,
    removal_efficiency_percent: float,
    cost_per_mg: float,
    ebct: float,
    safe_lifespan_months: float,
    assumptions: Optional[dict] = None,
) -> List[str]:
    if assumptions is None:
        assumptions = DEFAULT_ECONOMIC_ASSUMPTIONS
    findings = []

    life_bands = assumptions["lifespanBandsMonths"]
    if projected_lifespan_months < life_bands["critical"]:
        findings.append(
            f"Critical: projected GAC life of {projected_lifespan_months:.1f} months requires urgent replacement planning"
        )
    elif projected_lifespan_months < life_bands["moderate"]:
        findings.append(f"Moderate: projected GAC life of {projected_lifespan_months:.1f} months")
    else:
        findings.append(f"Good: projected GAC life of {projected_lifespan_months:.1f} months")

    if removal_efficiency_percent >= system.target_removal_efficiency:
        findings.append(
            f"Removal efficiency of {removal_efficiency_percent:.1f}% meets the "
            f"{system.target_removal_efficiency:.0f}% target"
        )
    else:
        findings.append(
            f"Removal efficiency of {removal_efficiency_percent:.1f}% falls short of the "
            f"{system.target_removal_efficiency:.0f}% target"
        )

    cost_bands = assumptions["costBandsPerMG"]
    if cost_per_mg < cost_bands["low"]:
        findings.append(f"Operating cost of ${cost_per_mg:,.0f} per million gallons is competitive")
    elif cost_per_mg < cost_bands["moderate"]:
        findings.append(f"Operating cost of ${cost_per_mg:,.0f} per million gallons is moderate")
    else:
        findings.append(f"Operating cost of ${cost_per_mg:,.0f} per million gallons is high")

    ebct_low, ebct_high = assumptions["ebctRangeMin"]
    if ebct < ebct_low:
        findings.append(f"EBCT of {ebct:.1f} min is below the {ebct_low:.0f}-min minimum recommended for PFAS")
    elif ebct > ebct_high:
        findings.append(f"EBCT of {ebct:.1f} min provides margin above the {ebct_high:.0f}-min design range")
    else:
        findings.append(f"EBCT of {ebct:.1f} min is within the {ebct_low:.0f}-{ebct_high:.0f} min design range")

    findings.append(f"95% confidence lifespan: {safe_lifespan_months:.1f} months")
    return findings


class EconomicAnalysisEngine:
    """Economic projections; holds the Monte Carlo seed, never a live generator."""

    def __init__(self, seed: Optional[int] = None, assumptions: Optional[dict] = None):
        self.seed = seed
        self.assumptions = build_economic_assumptions(assumptions)

    def project_lifespan(
        self, capacity_result: CapacityResult, breakthrough_result: BreakthroughResult, system: SystemData
    ) -> float:
        return project_lifespan(capacity_result, breakthrough_result, system, self.assumptions)

    def run_monte_carlo(
        self,
        system: SystemData,
        capacity_result: CapacityResult,
        iterations: Optional[int] = None,
        baseline_months: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> MonteCarloResult:
        seed = self.seed if seed is None else seed
        return run_monte_carlo(
            system, capacity_result, iterations, baseline_months, seed=seed, assumptions=self.assumptions
        )

    def cost_per_million_gallons(self, system: SystemData, lifespan_months: Optional[float] = None) -> float:
        return cost_per_million_gallons(system, lifespan_months, self.assumptions)

    def capital_avoidance(self, projected_lifespan_months: float, system: SystemData) -> float:
        return capital_avoidance(projected_lifespan_months, system)

    def analyze(
        self,
        system: SystemData,
        capacity_result: CapacityResult,
        breakthrough_result: BreakthroughResult,
        removal_efficiency_percent: float,
        ebct: float,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
        projected_lifespan_months: Optional[float] = None,
    ) -> EconomicAnalysis:
        if projected_lifespan_months is None:
            projected_lifespan_months = self.project_lifespan(capacity_result, breakthrough_result, system)
        monte_carlo = self.run_monte_carlo(
            system, capacity_result, iterations, baseline_months=projected_lifespan_months, seed=seed
        )
        cost_per_mg = self.cost_per_million_gallons(system, projected_lifespan_months)
        cv = monte_carlo.std_dev / monte_carlo.mean if monte_carlo.mean > 0 else 1.0
        confidence = max(self.assumptions["confidenceFloor"], min(1.0, 1 / (1 + cv)))

        return EconomicAnalysis(
            projected_lifespan_months=projected_lifespan_months,
            p95_safe_life_months=monte_carlo.p5,
            cost_per_million_gallons=cost_per_mg,
            annual_media_cost=round(annual_media_cost(system, projected_lifespan_months), 2),
            capital_avoidance=self.capital_avoidance(projected_lifespan_months, system),
            monte_carlo=monte_carlo,
            key_findings=generate_key_findings(
                system,
                projected_lifespan_months,
                removal_efficiency_percent,
                cost_per_mg,
                ebct,
                monte_carlo.p5,
                self.assumptions,
            ),
            confidence=confidence,
        )
