"""
PFAS Compliance Scanner - composition root.

Builds the four engines once, injects them into a ComplianceScanner and
exposes the two entry points collaborators call: analyze_pfas_compliance
and quick_analysis. Runtime settings come from the environment.
"""
import logging
import os
from typing import Optional, Union

from pydantic import ValidationError

from pfas_app.models.schemas import ComplianceReport, QuickAnalysis, ScanOptions, SystemData
from pfas_app.services.breakthrough_engine import BreakthroughEngine
from pfas_app.services.capacity_engine import CapacityEngine
from pfas_app.services.compliance_scanner import ComplianceScanner
from pfas_app.services.economic_engine import EconomicAnalysisEngine
from pfas_app.services.errors import InvalidConfigurationError
from pfas_app.services.risk_engine import RiskEngine

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pfas-scanner")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigurationError(f"{name} must be an integer, got {raw!r}", field=name)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigurationError(f"{name} must be a number, got {raw!r}", field=name)


def load_settings() -> dict:
    return {
        "monteCarloIterations": _env_int("PFAS_MONTE_CARLO_ITERATIONS", 5000),
        "randomSeed": _env_int("PFAS_RANDOM_SEED", None),
        "horizonDays": _env_float("PFAS_HORIZON_DAYS", 365.0),
    }


def build_compliance_scanner(seed: Optional[int] = None, overrides: Optional[dict] = None) -> ComplianceScanner:
    """Construct engines with optional per-engine assumption overrides.

    overrides keys: "capacity", "breakthrough", "risk", "economic".
    """
    overrides = overrides or {}
    return ComplianceScanner(
        capacity_engine=CapacityEngine(overrides.get("capacity")),
        breakthrough_engine=BreakthroughEngine(overrides.get("breakthrough")),
        risk_engine=RiskEngine(overrides.get("risk")),
        economic_engine=EconomicAnalysisEngine(seed=seed, assumptions=overrides.get("economic")),
    )


def parse_system_data(system: Union[SystemData, dict]) -> SystemData:
    if isinstance(system, SystemData):
        return system
    try:
        return SystemData.model_validate(system)
    except ValidationError as e:
        raise InvalidConfigurationError(f"Invalid system data: {e}") from e


def parse_scan_options(options: Union[ScanOptions, dict, None], settings: dict) -> ScanOptions:
    if isinstance(options, ScanOptions):
        return options
    try:
        parsed = ScanOptions.model_validate(options or {})
    except ValidationError as e:
        raise InvalidConfigurationError(f"Invalid scan options: {e}") from e
    defaults = {
        "monte_carlo_iterations": settings["monteCarloIterations"],
        "random_seed": settings["randomSeed"],
        "horizon_days": settings["horizonDays"],
    }
    # Caller-supplied options win over environment settings
    return parsed.model_copy(
        update={name: value for name, value in defaults.items() if name not in parsed.model_fields_set}
    )


def analyze_pfas_compliance(
    system: Union[SystemData, dict], options: Union[ScanOptions, dict, None] = None
) -> ComplianceReport:
    settings = load_settings()
    scanner = build_compliance_scanner(seed=settings["randomSeed"])
    return scanner.analyze_pfas_compliance(parse_system_data(system), parse_scan_options(options, settings))


def quick_analysis(system: Union[SystemData, dict]) -> QuickAnalysis:
    settings = load_settings()
    scanner = build_compliance_scanner(seed=settings["randomSeed"])
    return scanner.quick_analysis(parse_system_data(system))
