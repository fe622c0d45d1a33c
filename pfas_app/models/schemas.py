"""
Pydantic models for the PFAS compliance scanner.

Attributes are snake_case; every model also accepts and dumps camelCase
aliases (flowRate, totalPFAS, ...) so collaborators can hand in the same
payload shape the web client posts.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Literal, Optional


SystemType = Literal["Fixed Bed", "Moving Bed", "Fluidized Bed"]
RiskLevel = Literal["clear", "low", "high", "critical"]
ComplianceStatus = Literal["compliant", "approaching_limit", "exceeds_limit", "critical_exceedance"]
UrgencyLevel = Literal["low", "medium", "high", "critical"]
FitRating = Literal["excellent", "good", "poor"]

RISK_LEVEL_ORDER: List[str] = ["clear", "low", "high", "critical"]


class PFASRecord(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": to_camel, "frozen": True}


class SystemData(PFASRecord):
    system_type: SystemType = "Fixed Bed"
    vessel_diameter: float = 0.0
    vessel_height: float = 0.0
    flow_rate: float
    bed_height: float = 0.0
    bed_volume: float
    ebct: float = 0.0

    toc: float = 0.0
    sulfate: float = 0.0
    chloride: float = 0.0
    alkalinity: float = 0.0
    hardness: float = 0.0
    ph: float = Field(default=7.0, alias="pH")
    temperature: float = 20.0

    pfas_compounds: Dict[str, float] = Field(default_factory=dict)
    total_pfas: Optional[float] = Field(default=None, alias="totalPFAS")

    gac_type: str = "Bituminous Coal"
    gac_density: float = 450.0
    gac_particle_size: float = 1.0
    gac_iodine_number: float = 1000.0
    gac_surface_area: float = 1000.0

    gac_cost_per_kg: float = 3.5
    replacement_cost: float = 15000.0
    labor_cost: float = 5000.0
    disposal_cost: float = 3000.0

    operating_days_per_year: float = 365.0
    operating_hours_per_day: float = 24.0
    target_removal_efficiency: float = 95.0
    safety_factor: float = 1.5

    @property
    def compound_sum(self) -> float:
        return sum(self.pfas_compounds.values())

    @property
    def total_pfas_ng_l(self) -> float:
        """Reported total PFAS, or the sum of the compound mapping when none was given."""
        if self.total_pfas is None:
            return self.compound_sum
        return self.total_pfas

    @property
    def detected_compounds(self) -> Dict[str, float]:
        return {name: conc for name, conc in self.pfas_compounds.items() if conc > 0}


class ScanOptions(PFASRecord):
    include_multi_compound: bool = False
    monte_carlo_iterations: int = 5000
    random_seed: Optional[int] = None
    horizon_days: float = 365.0


class ValidationWarning(PFASRecord):
    field: str
    message: str
    severity: Literal["info", "warning"] = "warning"


class CapacityResult(PFASRecord):
    base_capacity: float
    adjusted_capacity: float
    freundlich_k: float
    freundlich_n: float
    toc_factor: float
    sulfate_factor: float
    system_factor: float
    confidence: float
    evidence: List[str]


class RemovalEfficiencyResult(PFASRecord):
    efficiency_percent: float
    transfer_units: float
    confidence: float
    evidence: List[str]


class BreakthroughPoint(PFASRecord):
    time_days: float
    bed_volumes: float
    effluent_fraction: float
    effluent_concentration: float


class ThomasParameters(PFASRecord):
    k_th: float
    q0: float
    thomas_number: float


class BreakthroughResult(PFASRecord):
    compound: Optional[str] = None
    influent_concentration: float
    breakthrough_fraction: float
    curve: List[BreakthroughPoint]
    breakthrough_time: float
    fifty_percent_time: float
    exhaustion_time: float
    total_bed_volumes: float
    thomas_parameters: ThomasParameters
    confidence: float
    evidence: List[str]


class RegulatoryGap(PFASRecord):
    compound: str
    current_level: float
    regulatory_limit: float
    exceedance_ratio: float
    exceedance_percent: float
    regulation: str


class RiskAssessment(PFASRecord):
    overall_risk_score: float
    risk_level: RiskLevel
    compliance_status: ComplianceStatus
    regulatory_gaps: List[RegulatoryGap]
    hazard_index: float
    estimated_fines_exposure: float
    recommendations: List[str]
    confidence: float


class MonteCarloResult(PFASRecord):
    iterations: int
    seed: Optional[int] = None
    mean: float
    std_dev: float
    p5: float
    p10: float
    p90: float
    p95: float


class EconomicAnalysis(PFASRecord):
    projected_lifespan_months: float
    p95_safe_life_months: float = Field(description="Lifespan reached in 95% of simulated outcomes")
    cost_per_million_gallons: float
    annual_media_cost: float
    capital_avoidance: float
    monte_carlo: MonteCarloResult
    key_findings: List[str]
    confidence: float


class ScanSummary(PFASRecord):
    total_pfas_detected: int = Field(alias="totalPFASDetected")
    compounds_above_limit: int
    predicted_system_life: float
    compliance_status: ComplianceStatus
    urgency_level: UrgencyLevel


class ComplianceReport(PFASRecord):
    scan_id: str
    system_type: SystemType
    ebct: float
    capacity_analysis: CapacityResult
    removal_efficiency: RemovalEfficiencyResult
    breakthrough_analysis: BreakthroughResult
    multi_compound_breakthrough: Optional[Dict[str, BreakthroughResult]] = None
    risk_assessment: RiskAssessment
    economic_analysis: EconomicAnalysis
    overall_confidence: float
    summary: ScanSummary
    warnings: List[ValidationWarning] = Field(default_factory=list)


class QuickAnalysis(PFASRecord):
    risk_level: RiskLevel
    projected_life_months: float
    compliance_status: ComplianceStatus
    urgent_issues: int


class ObservedBreakthroughPoint(PFASRecord):
    time_days: float
    concentration: float


class PilotStudyData(PFASRecord):
    study_duration_days: Optional[float] = None
    observed_breakthrough: List[ObservedBreakthroughPoint] = Field(default_factory=list)


class ValidationMetrics(PFASRecord):
    n_points: int
    rmse: float
    mae: float
    mape: float
    max_error: float
    bias: float
    r_squared: float


class PilotValidationResult(PFASRecord):
    validation_metrics: Optional[ValidationMetrics] = None
    fit_rating: Optional[FitRating] = None
    calibrated_report: ComplianceReport
    recommendations: List[str]
