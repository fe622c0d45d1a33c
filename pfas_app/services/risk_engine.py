import copy
import logging
from typing import List, Optional

from pfas_app.knowledge_base.pfas_library import EPA_MCLS, HAZARD_INDEX_HBWC, HAZARD_INDEX_LIMIT
from pfas_app.models.schemas import RegulatoryGap, RiskAssessment, SystemData

logger = logging.getLogger(__name__)


DEFAULT_RISK_ASSUMPTIONS = {
    # Upper score bound (inclusive) of each band; anything above "high" is critical
    "riskBands": {"clear": 2.0, "low": 4.0, "high": 7.0},
    "gapSeverityRatios": {"moderate": 2.0, "severe": 5.0},
    "gapPoints": {"minor": 1.0, "moderate": 2.0, "severe": 3.0},
    "maxGapPoints": 6.0,
    "hazardIndexPoints": 1.0,
    "lifePointsMax": 2.0,
    "lifeHorizonMonths": 24.0,
    "shortLifeMonths": 12.0,
    "efficiencyPointsMax": 2.0,
    "efficiencyShortfallPerPoint": 5.0,
    # Extreme loading alone lands in the high band, whatever the compounds
    "loadingThresholds": {"elevated": 500.0, "high": 1000.0, "extreme": 3000.0},
    "loadingPoints": {"elevated": 1.0, "high": 2.0, "extreme": 5.0},
    "approachingLimitFraction": 0.5,
    "dailyFineBase": 10000.0,
    "dailyFineCap": 25000.0,
    "nonComplianceDaysShortLife": 365,
    "nonComplianceDaysDefault": 180,
    "baseConfidence": 0.85,
    "sparseDetectionPenalty": 0.9,
    "confidenceFloor": 0.1,
}


def build_risk_assumptions(overrides: Optional[dict] = None) -> dict:
    assumptions = copy.deepcopy(DEFAULT_RISK_ASSUMPTIONS)
    if overrides:
        assumptions.update(overrides)
    return assumptions


def classify_risk_level(score: float, assumptions: Optional[dict] = None) -> str:
    bands = (assumptions or DEFAULT_RISK_ASSUMPTIONS)["riskBands"]
    if score <= bands["clear"]:
        return "clear"
    if score <= bands["low"]:
        return "low"
    if score <= bands["high"]:
        return "high"
    return "critical"


def find_regulatory_gaps(system: SystemData) -> List[RegulatoryGap]:
    gaps = []
    for compound, mcl in EPA_MCLS.items():
        level = system.pfas_compounds.get(compound, 0.0)
        if level > mcl["value"]:
            ratio = level / mcl["value"]
            gaps.append(RegulatoryGap(
                compound=compound,
                current_level=level,
                regulatory_limit=mcl["value"],
                exceedance_ratio=ratio,
                exceedance_percent=(ratio - 1) * 100,
                regulation=mcl["source"],
            ))
    return gaps


def calculate_hazard_index(system: SystemData) -> float:
    return sum(
        system.pfas_compounds.get(compound, 0.0) / hbwc["value"]
        for compound, hbwc in HAZARD_INDEX_HBWC.items()
    )


def _gap_points(gaps: List[RegulatoryGap], assumptions: dict) -> float:
    ratios = assumptions["gapSeverityRatios"]
    points = assumptions["gapPoints"]
    total = 0.0
    for gap in gaps:
        if gap.exceedance_ratio <= ratios["moderate"]:
            total += points["minor"]
        elif gap.exceedance_ratio <= ratios["severe"]:
            total += points["moderate"]
        else:
            total += points["severe"]
    return min(assumptions["maxGapPoints"], total)


def _compliance_status(
    system: SystemData, gaps: List[RegulatoryGap], hazard_index: float, risk_level: str, assumptions: dict
) -> str:
    if gaps:
        return "critical_exceedance" if risk_level == "critical" else "exceeds_limit"
    fraction = assumptions["approachingLimitFraction"]
    near_mcl = any(
        system.pfas_compounds.get(compound, 0.0) >= fraction * mcl["value"]
        for compound, mcl in EPA_MCLS.items()
    )
    if near_mcl or hazard_index >= fraction * HAZARD_INDEX_LIMIT:
        return "approaching_limit"
    return "compliant"


def estimate_fines_exposure(gaps: List[RegulatoryGap], remaining_life_months: float, assumptions: dict) -> float:
    """Daily penalty per violating compound times the expected days out of compliance."""
    if not gaps:
        return 0.0
    daily = sum(
        min(assumptions["dailyFineCap"], assumptions["dailyFineBase"] * (gap.exceedance_ratio - 1))
        for gap in gaps
    )
    if remaining_life_months < assumptions["shortLifeMonths"]:
        days = assumptions["nonComplianceDaysShortLife"]
    else:
        days = assumptions["nonComplianceDaysDefault"]
    return round(daily * days, 2)


def _no_pfas_assessment(assumptions: dict) -> RiskAssessment:
    return RiskAssessment(
        overall_risk_score=0.0,
        risk_level="clear",
        compliance_status="compliant",
        regulatory_gaps=[],
        hazard_index=0.0,
        estimated_fines_exposure=0.0,
        recommendations=["No PFAS detected: continue routine monitoring under the current sampling schedule"],
        confidence=assumptions["baseConfidence"],
    )


def assess_risk(
    system: SystemData,
    remaining_life_months: float,
    removal_efficiency_percent: float,
    assumptions: Optional[dict] = None,
) -> RiskAssessment:
    if assumptions is None:
        assumptions = DEFAULT_RISK_ASSUMPTIONS

    detected = system.detected_compounds
    if not detected:
        return _no_pfas_assessment(assumptions)

    gaps = find_regulatory_gaps(system)
    hazard_index = calculate_hazard_index(system)
    total_pfas = system.total_pfas_ng_l
    recommendations: List[str] = []

    score = _gap_points(gaps, assumptions)
    if gaps:
        names = ", ".join(gap.compound for gap in gaps)
        recommendations.append(
            f"URGENT: {len(gaps)} compound(s) exceed EPA MCLs ({names}) - immediate corrective action required"
        )
        if any(gap.exceedance_ratio > assumptions["gapSeverityRatios"]["severe"] for gap in gaps):
            recommendations.append(
                "Severe MCL exceedance: add a lag vessel or evaluate ion exchange polishing"
            )

    if hazard_index > HAZARD_INDEX_LIMIT:
        score += assumptions["hazardIndexPoints"]
        recommendations.append(
            f"Hazard Index of {hazard_index:.2f} exceeds {HAZARD_INDEX_LIMIT:.1f} for the PFNA/PFHxS/PFBS/HFPO-DA mixture"
        )

    life = max(0.0, remaining_life_months)
    life_fraction = max(0.0, 1 - life / assumptions["lifeHorizonMonths"])
    score += assumptions["lifePointsMax"] * life_fraction
    if life < assumptions["shortLifeMonths"]:
        recommendations.append(
            f"Short remaining media life ({life:.1f} months): schedule GAC change-out and consider "
            "higher-capacity media or a larger bed"
        )
    elif life < assumptions["lifeHorizonMonths"]:
        recommendations.append(f"Plan GAC replacement within the next {life:.0f} months")

    shortfall = max(0.0, system.target_removal_efficiency - removal_efficiency_percent)
    if shortfall > 0:
        score += min(assumptions["efficiencyPointsMax"], shortfall / assumptions["efficiencyShortfallPerPoint"])
        recommendations.append(
            f"Removal efficiency of {removal_efficiency_percent:.1f}% is below the "
            f"{system.target_removal_efficiency:.0f}% target: increase EBCT or upgrade GAC"
        )

    loading = assumptions["loadingThresholds"]
    if total_pfas > loading["extreme"]:
        score += assumptions["loadingPoints"]["extreme"]
        recommendations.append(
            f"Extreme influent PFAS loading ({total_pfas:.0f} ng/L): GAC alone is unlikely to keep pace, "
            "evaluate ion exchange or reverse osmosis pretreatment"
        )
    elif total_pfas > loading["high"]:
        score += assumptions["loadingPoints"]["high"]
    elif total_pfas > loading["elevated"]:
        score += assumptions["loadingPoints"]["elevated"]
    if total_pfas > loading["elevated"]:
        recommendations.append(
            f"High influent PFAS loading ({total_pfas:.0f} ng/L): investigate upstream sources or pretreatment"
        )

    score = round(min(10.0, max(0.0, score)), 2)
    risk_level = classify_risk_level(score, assumptions)
    if not recommendations:
        if risk_level == "clear":
            recommendations.append("Continue routine PFAS monitoring under the current sampling schedule")
        else:
            recommendations.append("Increase PFAS monitoring frequency to quarterly")

    confidence = assumptions["baseConfidence"]
    if len(detected) < 2:
        confidence *= assumptions["sparseDetectionPenalty"]

    fines = estimate_fines_exposure(gaps, life, assumptions)
    status = _compliance_status(system, gaps, hazard_index, risk_level, assumptions)
    logger.info(
        "Risk: score=%.2f level=%s gaps=%d hazard_index=%.2f fines=$%.0f",
        score, risk_level, len(gaps), hazard_index, fines,
    )

    return RiskAssessment(
        overall_risk_score=score,
        risk_level=risk_level,
        compliance_status=status,
        regulatory_gaps=gaps,
        hazard_index=hazard_index,
        estimated_fines_exposure=fines,
        recommendations=recommendations,
        confidence=max(assumptions["confidenceFloor"], min(1.0, confidence)),
    )


class RiskEngine:
    def __init__(self, assumptions: Optional[dict] = None):
        self.assumptions = build_risk_assumptions(assumptions)

    def assess_risk(
        self, system: SystemData, remaining_life_months: float, removal_efficiency_percent: float
    ) -> RiskAssessment:
        return assess_risk(system, remaining_life_months, removal_efficiency_percent, self.assumptions)
