from pfas_app.knowledge_base.pfas_library import (
    COMPOUND_PROFILES,
    EPA_MCLS,
    FREUNDLICH_PARAMETERS,
    HAZARD_INDEX_HBWC,
    get_chain_length_factor,
    get_isotherm_class,
    get_mcl,
    is_known_compound,
    modeled_concentration,
)


class TestPFASLibrary:
    def test_mcls(self):
        assert get_mcl("PFOA") == 4.0
        assert get_mcl("PFOS") == 4.0
        assert get_mcl("PFBS") is None
        assert all(entry["unit"] == "ng/L" and entry["source"] for entry in EPA_MCLS.values())

    def test_profiles_reference_known_isotherm_classes(self):
        for profile in COMPOUND_PROFILES.values():
            assert profile["isothermClass"] in FREUNDLICH_PARAMETERS
            assert profile["chainLengthFactor"] > 0

    def test_hazard_index_compounds_have_profiles(self):
        assert all(is_known_compound(name) for name in HAZARD_INDEX_HBWC)

    def test_unknown_compound_defaults(self):
        assert not is_known_compound("6:2 FTS")
        assert get_isotherm_class("6:2 FTS") == "mixed"
        assert get_chain_length_factor("6:2 FTS") == 1.0

    def test_detection_floor(self):
        assert modeled_concentration(0.0) == 0.5
        assert modeled_concentration(85.0) == 85.0
