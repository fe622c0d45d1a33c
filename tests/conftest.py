"""
Pytest configuration: add project root to sys.path so
'from pfas_app.services.xxx import ...' works without an install,
plus shared system fixtures.
"""
import os
import sys

import pytest

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from pfas_app.models.schemas import SystemData  # noqa: E402


# Reference fixed-bed system: 100 m3/h through a 10 m3 coconut-shell bed
REFERENCE_COMPOUNDS = {
    "PFOA": 25.0,
    "PFOS": 15.0,
    "PFNA": 5.0,
    "PFHxA": 8.0,
    "PFHxS": 12.0,
    "PFDA": 3.0,
    "PFBS": 10.0,
    "PFHpA": 4.0,
    "PFUnDA": 2.0,
    "PFDoA": 1.0,
}

LOW_COMPOUNDS = {
    "PFOA": 2.0,
    "PFOS": 1.5,
    "PFNA": 3.0,
    "PFHxA": 2.0,
    "PFHxS": 3.0,
    "PFDA": 1.0,
    "PFBS": 2.0,
    "PFHpA": 1.0,
    "PFUnDA": 0.5,
    "PFDoA": 0.3,
}

HIGH_COMPOUNDS = {
    "PFOA": 1000.0,
    "PFOS": 800.0,
    "PFNA": 500.0,
    "PFHxA": 300.0,
    "PFHxS": 400.0,
    "PFDA": 200.0,
    "PFBS": 150.0,
    "PFHpA": 100.0,
    "PFUnDA": 80.0,
    "PFDoA": 50.0,
}


def build_system(**overrides) -> SystemData:
    payload = {
        "system_type": "Fixed Bed",
        "vessel_diameter": 2.5,
        "vessel_height": 3.0,
        "flow_rate": 100.0,
        "bed_height": 2.0,
        "bed_volume": 10.0,
        "ebct": 15.0,
        "toc": 3.0,
        "sulfate": 50.0,
        "chloride": 30.0,
        "alkalinity": 100.0,
        "hardness": 150.0,
        "ph": 7.0,
        "temperature": 20.0,
        "pfas_compounds": dict(REFERENCE_COMPOUNDS),
        "total_pfas": 85.0,
        "gac_type": "Coconut Shell",
        "gac_density": 450.0,
        "gac_particle_size": 1.5,
        "gac_iodine_number": 1000.0,
        "gac_surface_area": 1200.0,
        "gac_cost_per_kg": 3.5,
        "replacement_cost": 15000.0,
        "labor_cost": 5000.0,
        "disposal_cost": 3000.0,
        "operating_days_per_year": 365.0,
        "operating_hours_per_day": 24.0,
        "target_removal_efficiency": 95.0,
        "safety_factor": 1.5,
    }
    if "pfas_compounds" in overrides and "total_pfas" not in overrides:
        overrides["total_pfas"] = sum(overrides["pfas_compounds"].values())
    payload.update(overrides)
    return SystemData(**payload)


@pytest.fixture
def make_system():
    return build_system


@pytest.fixture
def system():
    return build_system()


@pytest.fixture
def low_system():
    return build_system(pfas_compounds=dict(LOW_COMPOUNDS))


@pytest.fixture
def high_system():
    return build_system(pfas_compounds=dict(HIGH_COMPOUNDS))


@pytest.fixture
def zero_system():
    return build_system(pfas_compounds={name: 0.0 for name in REFERENCE_COMPOUNDS})
