"""
PFAS compliance scan orchestration.

Sequences capacity, breakthrough, risk and economic analysis for one GAC
system and assembles an immutable ComplianceReport. Engines are injected;
the scanner does no modeling of its own beyond combining confidences and
summarizing sub-results.
"""
import logging
import math
import uuid
from typing import Dict, Optional

from pfas_app.models.schemas import (
    ComplianceReport,
    PilotStudyData,
    PilotValidationResult,
    QuickAnalysis,
    RiskAssessment,
    ScanOptions,
    ScanSummary,
    SystemData,
)
from pfas_app.services.breakthrough_engine import BreakthroughEngine
from pfas_app.services.capacity_engine import CapacityEngine
from pfas_app.services.economic_engine import EconomicAnalysisEngine
from pfas_app.services.pilot_validation import (
    predicted_at_observation_times,
    rate_model_fit,
    validate_breakthrough_prediction,
)
from pfas_app.services.risk_engine import RiskEngine
from pfas_app.services.validation import validate_scan_options, validate_system_data

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_WEIGHTS: Dict[str, float] = {
    "capacity": 0.25,
    "removalEfficiency": 0.10,
    "breakthrough": 0.25,
    "risk": 0.20,
    "economic": 0.20,
}

SCAN_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "pfas-compliance-scan")

MIN_COMPONENT_CONFIDENCE = 1e-6


def combine_confidences(confidences: Dict[str, float], weights: Dict[str, float]) -> float:
    """Weighted geometric mean; stays in (0, 1] when every input does."""
    total_weight = sum(weights[name] for name in confidences)
    log_sum = sum(
        weights[name] * math.log(max(MIN_COMPONENT_CONFIDENCE, min(1.0, value)))
        for name, value in confidences.items()
    )
    return min(1.0, math.exp(log_sum / total_weight))


def urgency_level(risk: RiskAssessment) -> str:
    if risk.risk_level == "critical":
        return "critical"
    if risk.risk_level == "high":
        return "high"
    if risk.regulatory_gaps:
        return "medium"
    return "low"


def make_scan_id(system: SystemData, options: ScanOptions, seed: Optional[int]) -> str:
    if seed is None:
        return f"scan-{uuid.uuid4().hex[:16]}"
    fingerprint = f"{system.model_dump_json()}|{options.model_dump_json()}|{seed}"
    return f"scan-{uuid.uuid5(SCAN_ID_NAMESPACE, fingerprint).hex[:16]}"


class ComplianceScanner:
    def __init__(
        self,
        capacity_engine: CapacityEngine,
        breakthrough_engine: BreakthroughEngine,
        risk_engine: RiskEngine,
        economic_engine: EconomicAnalysisEngine,
        confidence_weights: Optional[Dict[str, float]] = None,
    ):
        self.capacity_engine = capacity_engine
        self.breakthrough_engine = breakthrough_engine
        self.risk_engine = risk_engine
        self.economic_engine = economic_engine
        self.confidence_weights = dict(confidence_weights or DEFAULT_CONFIDENCE_WEIGHTS)

    def analyze_pfas_compliance(self, system: SystemData, options: Optional[ScanOptions] = None) -> ComplianceReport:
        if options is None:
            options = ScanOptions()
        warnings = validate_system_data(system)
        validate_scan_options(options)
        seed = options.random_seed if options.random_seed is not None else self.economic_engine.seed

        ebct = self.capacity_engine.calculate_ebct(system)
        capacity = self.capacity_engine.analyze_capacity(system)
        efficiency = self.capacity_engine.calculate_removal_efficiency(system, capacity)

        breakthrough = self.breakthrough_engine.calculate_breakthrough(
            system, capacity.adjusted_capacity, options.horizon_days
        )
        multi_compound = None
        if options.include_multi_compound:
            multi_compound = self.breakthrough_engine.calculate_multi_compound_breakthrough(
                system, capacity.adjusted_capacity, options.horizon_days
            )

        projected_life = self.economic_engine.project_lifespan(capacity, breakthrough, system)
        risk = self.risk_engine.assess_risk(system, projected_life, efficiency.efficiency_percent)
        economics = self.economic_engine.analyze(
            system,
            capacity,
            breakthrough,
            efficiency.efficiency_percent,
            ebct,
            iterations=options.monte_carlo_iterations,
            seed=seed,
            projected_lifespan_months=projected_life,
        )

        overall_confidence = combine_confidences(
            {
                "capacity": capacity.confidence,
                "removalEfficiency": efficiency.confidence,
                "breakthrough": breakthrough.confidence,
                "risk": risk.confidence,
                "economic": economics.confidence,
            },
            self.confidence_weights,
        )
        summary = ScanSummary(
            total_pfas_detected=len(system.detected_compounds),
            compounds_above_limit=len(risk.regulatory_gaps),
            predicted_system_life=projected_life,
            compliance_status=risk.compliance_status,
            urgency_level=urgency_level(risk),
        )
        scan_id = make_scan_id(system, options, seed)

        logger.info(
            "Compliance Scanner: scan %s complete: risk=%s life=%.1f months confidence=%.2f",
            scan_id, risk.risk_level, projected_life, overall_confidence,
        )

        return ComplianceReport(
            scan_id=scan_id,
            system_type=system.system_type,
            ebct=ebct,
            capacity_analysis=capacity,
            removal_efficiency=efficiency,
            breakthrough_analysis=breakthrough,
            multi_compound_breakthrough=multi_compound,
            risk_assessment=risk,
            economic_analysis=economics,
            overall_confidence=overall_confidence,
            summary=summary,
            warnings=warnings,
        )

    def quick_analysis(self, system: SystemData) -> QuickAnalysis:
        """Risk level and projected life without the Monte Carlo simulation."""
        validate_system_data(system)
        capacity = self.capacity_engine.analyze_capacity(system)
        efficiency = self.capacity_engine.calculate_removal_efficiency(system, capacity)
        breakthrough = self.breakthrough_engine.calculate_breakthrough(system, capacity.adjusted_capacity)
        projected_life = self.economic_engine.project_lifespan(capacity, breakthrough, system)
        risk = self.risk_engine.assess_risk(system, projected_life, efficiency.efficiency_percent)

        return QuickAnalysis(
            risk_level=risk.risk_level,
            projected_life_months=projected_life,
            compliance_status=risk.compliance_status,
            urgent_issues=len(risk.regulatory_gaps),
        )

    def validate_with_pilot_data(
        self,
        system: SystemData,
        pilot_data: Optional[PilotStudyData] = None,
        options: Optional[ScanOptions] = None,
    ) -> PilotValidationResult:
        if options is None:
            options = ScanOptions()
        observations = pilot_data.observed_breakthrough if pilot_data else []
        if observations:
            last_observation = max(point.time_days for point in observations)
            if last_observation > options.horizon_days:
                options = options.model_copy(update={"horizon_days": last_observation})

        report = self.analyze_pfas_compliance(system, options)
        if not observations:
            return PilotValidationResult(
                calibrated_report=report,
                recommendations=["No pilot data available: using literature-based model parameters"],
            )

        predicted = predicted_at_observation_times(report.breakthrough_analysis, observations)
        metrics = validate_breakthrough_prediction(predicted, [point.concentration for point in observations])
        rating = rate_model_fit(metrics.r_squared)
        if rating == "excellent":
            recommendation = "Excellent model fit (R2 > 0.9): predictions highly reliable"
        elif rating == "good":
            recommendation = "Good model fit (R2 > 0.7): predictions reliable with some uncertainty"
        else:
            recommendation = "Model fit below target (R2 <= 0.7): consider site-specific isotherm calibration"
        logger.info(
            "Compliance Scanner: pilot validation for %s: R2=%.3f RMSE=%.3f ng/L (%s)",
            report.scan_id, metrics.r_squared, metrics.rmse, rating,
        )

        return PilotValidationResult(
            validation_metrics=metrics,
            fit_rating=rating,
            calibrated_report=report,
            recommendations=[recommendation],
        )
