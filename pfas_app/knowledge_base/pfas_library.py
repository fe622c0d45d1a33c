"""
PFAS reference library: regulatory limits, Hazard Index weights, compound
profiles and Freundlich isotherm parameters per compound class.

Concentrations are ng/L. Freundlich K is in (ug/g)/(ng/L)^(1/n).
"""
from typing import Dict, Optional, TypedDict


class CompoundProfile(TypedDict):
    name: str
    family: str
    chainLength: int
    isothermClass: str
    chainLengthFactor: float


EPA_FINAL_RULE = "89 FR 32520 (April 26, 2024) - EPA Final Rule"

# National Primary Drinking Water Regulation MCLs
EPA_MCLS: Dict[str, dict] = {
    "PFOA": {"value": 4.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
    "PFOS": {"value": 4.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
    "PFNA": {"value": 10.0, "unit": "ng/L", "source": f"{EPA_FINAL_RULE} (Hazard Index)"},
    "PFHxS": {"value": 10.0, "unit": "ng/L", "source": f"{EPA_FINAL_RULE} (Hazard Index)"},
}

# Health-based water concentrations for the mixture Hazard Index (HI = sum(c / HBWC), MCL HI = 1)
HAZARD_INDEX_HBWC: Dict[str, dict] = {
    "PFNA": {"value": 10.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
    "PFHxS": {"value": 10.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
    "PFBS": {"value": 2000.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
    "HFPO-DA": {"value": 10.0, "unit": "ng/L", "source": EPA_FINAL_RULE},
}

HAZARD_INDEX_LIMIT = 1.0

COMPOUND_PROFILES: Dict[str, CompoundProfile] = {
    "PFBA": {"name": "Perfluorobutanoic acid", "family": "carboxylate", "chainLength": 4,
             "isothermClass": "short_chain", "chainLengthFactor": 0.5},
    "PFBS": {"name": "Perfluorobutanesulfonic acid", "family": "sulfonate", "chainLength": 4,
             "isothermClass": "short_chain", "chainLengthFactor": 0.6},
    "PFPeA": {"name": "Perfluoropentanoic acid", "family": "carboxylate", "chainLength": 5,
              "isothermClass": "short_chain", "chainLengthFactor": 0.7},
    "PFHxA": {"name": "Perfluorohexanoic acid", "family": "carboxylate", "chainLength": 6,
              "isothermClass": "short_chain", "chainLengthFactor": 0.8},
    "HFPO-DA": {"name": "Hexafluoropropylene oxide dimer acid (GenX)", "family": "ether", "chainLength": 6,
                "isothermClass": "short_chain", "chainLengthFactor": 0.8},
    "PFHxS": {"name": "Perfluorohexanesulfonic acid", "family": "sulfonate", "chainLength": 6,
              "isothermClass": "long_chain_sulfonate", "chainLengthFactor": 0.9},
    "PFHpA": {"name": "Perfluoroheptanoic acid", "family": "carboxylate", "chainLength": 7,
              "isothermClass": "short_chain", "chainLengthFactor": 1.0},
    "PFOA": {"name": "Perfluorooctanoic acid", "family": "carboxylate", "chainLength": 8,
             "isothermClass": "long_chain_carboxylate", "chainLengthFactor": 1.2},
    "PFOS": {"name": "Perfluorooctanesulfonic acid", "family": "sulfonate", "chainLength": 8,
             "isothermClass": "long_chain_sulfonate", "chainLengthFactor": 1.3},
    "PFNA": {"name": "Perfluorononanoic acid", "family": "carboxylate", "chainLength": 9,
             "isothermClass": "long_chain_carboxylate", "chainLengthFactor": 1.4},
    "PFDA": {"name": "Perfluorodecanoic acid", "family": "carboxylate", "chainLength": 10,
             "isothermClass": "long_chain_carboxylate", "chainLengthFactor": 1.5},
    "PFUnDA": {"name": "Perfluoroundecanoic acid", "family": "carboxylate", "chainLength": 11,
               "isothermClass": "long_chain_carboxylate", "chainLengthFactor": 1.6},
    "PFDoA": {"name": "Perfluorododecanoic acid", "family": "carboxylate", "chainLength": 12,
              "isothermClass": "long_chain_carboxylate", "chainLengthFactor": 1.7},
}

# Freundlich parameters for bituminous/coconut GAC at ng/L levels.
FREUNDLICH_PARAMETERS: Dict[str, dict] = {
    "long_chain_sulfonate": {
        "k": 1.6, "n": 2.0,
        "source": "Typical literature range for PFOS/PFHxS on bituminous GAC",
    },
    "long_chain_carboxylate": {
        "k": 1.1, "n": 2.0,
        "source": "Typical literature range for PFOA/PFNA on bituminous GAC",
    },
    "short_chain": {
        "k": 0.45, "n": 1.8,
        "source": "Typical literature range for short-chain PFAS (C4-C7) on GAC",
    },
    "mixed": {
        "k": 1.0, "n": 2.0,
        "source": "Default mixture used when no compound is detected",
    },
}

DEFAULT_ISOTHERM_CLASS = "mixed"

# Lower bound on modeled influent concentration, below EPA Method 533 reporting limits
MODEL_DETECTION_FLOOR_NG_L = 0.5


def get_mcl(compound: str) -> Optional[float]:
    entry = EPA_MCLS.get(compound)
    return entry["value"] if entry else None


def get_isotherm_class(compound: str) -> str:
    profile = COMPOUND_PROFILES.get(compound)
    return profile["isothermClass"] if profile else DEFAULT_ISOTHERM_CLASS


def get_chain_length_factor(compound: str) -> float:
    profile = COMPOUND_PROFILES.get(compound)
    return profile["chainLengthFactor"] if profile else 1.0


def is_known_compound(compound: str) -> bool:
    return compound in COMPOUND_PROFILES


def modeled_concentration(concentration_ng_l: float) -> float:
    return max(concentration_ng_l, MODEL_DETECTION_FLOOR_NG_L)
