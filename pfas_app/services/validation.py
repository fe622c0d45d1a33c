import logging
import math
from typing import List

from pfas_app.knowledge_base.pfas_library import is_known_compound
from pfas_app.models.schemas import ScanOptions, SystemData, ValidationWarning
from pfas_app.services.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

STRICTLY_POSITIVE_FIELDS = [
    "flow_rate",
    "bed_volume",
    "gac_density",
    "operating_days_per_year",
    "operating_hours_per_day",
    "safety_factor",
]

NON_NEGATIVE_FIELDS = [
    "vessel_diameter",
    "vessel_height",
    "bed_height",
    "ebct",
    "toc",
    "sulfate",
    "chloride",
    "alkalinity",
    "hardness",
    "temperature",
    "gac_particle_size",
    "gac_iodine_number",
    "gac_surface_area",
    "gac_cost_per_kg",
    "replacement_cost",
    "labor_cost",
    "disposal_cost",
]

TOTAL_PFAS_ABS_TOLERANCE = 0.5
TOTAL_PFAS_REL_TOLERANCE = 0.05
EBCT_MISMATCH_TOLERANCE = 0.25


def _require_finite(name: str, value: float):
    if value is None or not math.isfinite(value):
        raise InvalidConfigurationError(f"{name} must be a finite number, got {value}", field=name)


def validate_system_data(system: SystemData) -> List[ValidationWarning]:
    """Reject malformed systems and collect non-fatal data-quality warnings."""
    for name in STRICTLY_POSITIVE_FIELDS:
        value = getattr(system, name)
        _require_finite(name, value)
        if value <= 0:
            raise InvalidConfigurationError(f"{name} must be greater than zero, got {value}", field=name)

    for name in NON_NEGATIVE_FIELDS:
        value = getattr(system, name)
        _require_finite(name, value)
        if value < 0:
            raise InvalidConfigurationError(f"{name} must not be negative, got {value}", field=name)

    if system.operating_days_per_year > 366:
        raise InvalidConfigurationError(
            f"operating_days_per_year cannot exceed 366, got {system.operating_days_per_year}",
            field="operating_days_per_year",
        )
    if system.operating_hours_per_day > 24:
        raise InvalidConfigurationError(
            f"operating_hours_per_day cannot exceed 24, got {system.operating_hours_per_day}",
            field="operating_hours_per_day",
        )

    _require_finite("ph", system.ph)
    if not 0 <= system.ph <= 14:
        raise InvalidConfigurationError(f"ph must be between 0 and 14, got {system.ph}", field="ph")

    _require_finite("target_removal_efficiency", system.target_removal_efficiency)
    if not 0 < system.target_removal_efficiency <= 100:
        raise InvalidConfigurationError(
            f"target_removal_efficiency must be in (0, 100], got {system.target_removal_efficiency}",
            field="target_removal_efficiency",
        )

    for compound, concentration in system.pfas_compounds.items():
        _require_finite(f"pfas_compounds.{compound}", concentration)
        if concentration < 0:
            raise InvalidConfigurationError(
                f"Concentration for {compound} must not be negative, got {concentration} ng/L",
                field=f"pfas_compounds.{compound}",
            )

    if system.total_pfas is not None:
        _require_finite("total_pfas", system.total_pfas)
        if system.total_pfas < 0:
            raise InvalidConfigurationError(
                f"total_pfas must not be negative, got {system.total_pfas} ng/L", field="total_pfas"
            )

    warnings = _collect_warnings(system)
    for w in warnings:
        logger.warning("Validation: %s: %s", w.field, w.message)
    return warnings


def _collect_warnings(system: SystemData) -> List[ValidationWarning]:
    warnings: List[ValidationWarning] = []

    unknown = sorted(name for name in system.pfas_compounds if not is_known_compound(name))
    if unknown:
        warnings.append(ValidationWarning(
            field="pfas_compounds",
            message=f"Unrecognized compound(s) {', '.join(unknown)} modeled with default isotherm parameters",
        ))

    if system.total_pfas is not None and system.pfas_compounds:
        compound_sum = system.compound_sum
        tolerance = max(TOTAL_PFAS_ABS_TOLERANCE, TOTAL_PFAS_REL_TOLERANCE * compound_sum)
        if abs(system.total_pfas - compound_sum) > tolerance:
            warnings.append(ValidationWarning(
                field="total_pfas",
                message=(
                    f"Reported total PFAS ({system.total_pfas:.1f} ng/L) does not match the sum of "
                    f"individual compounds ({compound_sum:.1f} ng/L)"
                ),
            ))

    calculated_ebct = system.bed_volume / system.flow_rate * 60
    if system.ebct > 0 and abs(calculated_ebct - system.ebct) > EBCT_MISMATCH_TOLERANCE * system.ebct:
        warnings.append(ValidationWarning(
            field="ebct",
            message=(
                f"Target EBCT of {system.ebct:.1f} min differs from the {calculated_ebct:.1f} min "
                f"implied by bed volume and flow rate"
            ),
            severity="info",
        ))

    if system.vessel_diameter > 0 and system.vessel_height > 0:
        vessel_volume = math.pi * system.vessel_diameter ** 2 / 4 * system.vessel_height
        if system.bed_volume > vessel_volume:
            warnings.append(ValidationWarning(
                field="bed_volume",
                message=(
                    f"Bed volume of {system.bed_volume:.2f} m3 exceeds the vessel volume of "
                    f"{vessel_volume:.2f} m3"
                ),
            ))

    return warnings


def validate_scan_options(options: ScanOptions):
    if options.monte_carlo_iterations <= 0:
        raise InvalidConfigurationError(
            f"monte_carlo_iterations must be greater than zero, got {options.monte_carlo_iterations}",
            field="monte_carlo_iterations",
        )
    _require_finite("horizon_days", options.horizon_days)
    if options.horizon_days <= 0:
        raise InvalidConfigurationError(
            f"horizon_days must be greater than zero, got {options.horizon_days}", field="horizon_days"
        )
