"""
Entry point tests: payload parsing, environment settings, scanner wiring
"""
import pytest

from pfas_app import main
from pfas_app.models.schemas import ScanOptions, SystemData
from pfas_app.services.errors import InvalidConfigurationError


CAMEL_CASE_PAYLOAD = {
    "systemType": "Fixed Bed",
    "vesselDiameter": 2.5,
    "vesselHeight": 3.0,
    "flowRate": 100.0,
    "bedHeight": 2.0,
    "bedVolume": 10.0,
    "ebct": 6.0,
    "toc": 3.0,
    "sulfate": 50.0,
    "pH": 7.0,
    "temperature": 20.0,
    "pfasCompounds": {"PFOA": 25.0, "PFOS": 15.0, "PFBS": 10.0},
    "totalPFAS": 50.0,
    "gacType": "Coconut Shell",
    "gacDensity": 450.0,
    "gacIodineNumber": 1000.0,
    "gacCostPerKg": 3.5,
    "replacementCost": 15000.0,
    "laborCost": 5000.0,
    "disposalCost": 3000.0,
    "operatingDaysPerYear": 365,
    "operatingHoursPerDay": 24,
    "targetRemovalEfficiency": 95.0,
    "safetyFactor": 1.5,
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["PFAS_MONTE_CARLO_ITERATIONS", "PFAS_RANDOM_SEED", "PFAS_HORIZON_DAYS"]:
        monkeypatch.delenv(name, raising=False)


class TestParseSystemData:
    def test_camel_case_payload(self):
        system = main.parse_system_data(CAMEL_CASE_PAYLOAD)
        assert system.flow_rate == 100.0
        assert system.total_pfas == 50.0
        assert system.pfas_compounds["PFOS"] == 15.0

    def test_snake_case_payload(self):
        system = main.parse_system_data({"flow_rate": 50.0, "bed_volume": 5.0})
        assert system.bed_volume == 5.0
        assert system.total_pfas_ng_l == 0.0

    def test_model_passes_through(self, system):
        assert main.parse_system_data(system) is system

    def test_dumps_camel_case(self, system):
        dumped = system.model_dump(by_alias=True)
        assert dumped["flowRate"] == 100.0
        assert dumped["totalPFAS"] == 85.0

    @pytest.mark.parametrize("payload", [
        {"bedVolume": 10.0},
        {"flowRate": "fast", "bedVolume": 10.0},
        {"flowRate": 100.0, "bedVolume": 10.0, "systemType": "Pressure Filter"},
    ])
    def test_bad_payload_raises(self, payload):
        with pytest.raises(InvalidConfigurationError):
            main.parse_system_data(payload)


class TestSettings:
    def test_defaults(self):
        assert main.load_settings() == {"monteCarloIterations": 5000, "randomSeed": None, "horizonDays": 365.0}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PFAS_MONTE_CARLO_ITERATIONS", "250")
        monkeypatch.setenv("PFAS_RANDOM_SEED", "17")
        monkeypatch.setenv("PFAS_HORIZON_DAYS", "730")
        assert main.load_settings() == {"monteCarloIterations": 250, "randomSeed": 17, "horizonDays": 730.0}

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv("PFAS_MONTE_CARLO_ITERATIONS", "many")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            main.load_settings()
        assert exc_info.value.field == "PFAS_MONTE_CARLO_ITERATIONS"

    def test_options_merge_with_settings(self):
        settings = {"monteCarloIterations": 250, "randomSeed": 3, "horizonDays": 400.0}
        options = main.parse_scan_options({"includeMultiCompound": True}, settings)
        assert options == ScanOptions(
            include_multi_compound=True, monte_carlo_iterations=250, random_seed=3, horizon_days=400.0
        )


class TestEntryPoints:
    def test_analyze_from_dict(self, monkeypatch):
        monkeypatch.setenv("PFAS_MONTE_CARLO_ITERATIONS", "300")
        report = main.analyze_pfas_compliance(CAMEL_CASE_PAYLOAD, {"randomSeed": 5})
        assert report.economic_analysis.monte_carlo.iterations == 300
        assert {gap.compound for gap in report.risk_assessment.regulatory_gaps} == {"PFOA", "PFOS"}
        dumped = report.model_dump(by_alias=True)
        assert "totalPFASDetected" in dumped["summary"]
        assert "overallConfidence" in dumped

    def test_environment_seed_is_reproducible(self, monkeypatch):
        monkeypatch.setenv("PFAS_MONTE_CARLO_ITERATIONS", "300")
        monkeypatch.setenv("PFAS_RANDOM_SEED", "123")
        first = main.analyze_pfas_compliance(CAMEL_CASE_PAYLOAD)
        second = main.analyze_pfas_compliance(CAMEL_CASE_PAYLOAD)
        assert first.model_dump_json() == second.model_dump_json()
        assert first.economic_analysis.monte_carlo.seed == 123

    def test_quick_analysis(self):
        quick = main.quick_analysis(SystemData.model_validate(CAMEL_CASE_PAYLOAD))
        assert quick.urgent_issues == 2
        assert quick.risk_level in ("high", "critical")

    def test_overrides_reach_engines(self):
        scanner = main.build_compliance_scanner(seed=1, overrides={"risk": {"baseConfidence": 0.5}})
        assert scanner.risk_engine.assumptions["baseConfidence"] == 0.5
        assert scanner.economic_engine.seed == 1

    def test_invalid_options_raise(self, system):
        with pytest.raises(InvalidConfigurationError):
            main.analyze_pfas_compliance(system, {"monteCarloIterations": 0})
