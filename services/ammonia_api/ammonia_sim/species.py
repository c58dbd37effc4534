"""
Species set and component-vector helpers.

A component vector is a fixed-length numpy array of molar flows
(kgmol/hr) indexed by :class:`Species`.  Entries may legally go negative
when aggressive conversions are requested; nothing here clamps them.
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Dict, Mapping, Union

import numpy as np
from chemicals.elements import molecular_weight, simple_formula_parser


class Species(IntEnum):
    AR = 0
    C2H6 = 1
    CH4 = 2
    CO = 3
    CO2 = 4
    H2 = 5
    N2 = 6
    NH3 = 7
    O2 = 8
    H2O = 9


N_SPECIES = len(Species)
DRY_SPECIES = tuple(s for s in Species if s is not Species.H2O)

# Nm³ per kgmol at normal conditions (0 °C, 1 atm)
MOLAR_VOLUME_NM3 = 22.414
# kg per kgmol, used for the steam t/h -> kgmol/h conversion
H2O_MOLAR_MASS = 18.0

# Chemical formulas understood by ``chemicals``; argon is "Ar", not "AR"
_FORMULAS: Dict[Species, str] = {
    Species.AR: "Ar",
    Species.C2H6: "C2H6",
    Species.CH4: "CH4",
    Species.CO: "CO",
    Species.CO2: "CO2",
    Species.H2: "H2",
    Species.N2: "N2",
    Species.NH3: "NH3",
    Species.O2: "O2",
    Species.H2O: "H2O",
}

ATOMS: Dict[Species, Dict[str, int]] = {
    s: simple_formula_parser(f) for s, f in _FORMULAS.items()
}
MOLECULAR_WEIGHTS = np.array(
    [molecular_weight(ATOMS[s]) for s in Species], dtype=float
)  # kg/kgmol

ELEMENTS = ("C", "H", "N", "O", "Ar")

SpeciesKey = Union[str, Species]


def resolve_species(key: SpeciesKey) -> Species:
    """Map a species name (case-insensitive) or member to a :class:`Species`."""
    if isinstance(key, Species):
        return key
    try:
        return Species[str(key).strip().upper()]
    except KeyError:
        raise KeyError(f"Unknown species '{key}'") from None


def coerce_flow(value) -> float:
    """Coerce a boundary value to float; malformed input becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result):
        return 0.0
    return result


def zero_vector() -> np.ndarray:
    return np.zeros(N_SPECIES, dtype=float)


def make_vector(flows: Mapping[SpeciesKey, object] | None = None) -> np.ndarray:
    """Build a complete component vector; missing species default to 0."""
    vec = zero_vector()
    for key, value in (flows or {}).items():
        vec[resolve_species(key)] = coerce_flow(value)
    return vec


def as_vector(flows) -> np.ndarray:
    """Accept a mapping or an array-like and return a fresh float vector."""
    if isinstance(flows, Mapping):
        return make_vector(flows)
    vec = np.array(flows, dtype=float)
    if vec.shape != (N_SPECIES,):
        raise ValueError(
            f"Component vector must have {N_SPECIES} entries, got shape {vec.shape}"
        )
    return vec


def vector_to_dict(vec: np.ndarray) -> Dict[str, float]:
    return {s.name: float(vec[s]) for s in Species}


def merge_override(base: np.ndarray, species: SpeciesKey, value) -> np.ndarray:
    """Patch one species over ``base`` and return a new complete vector."""
    merged = np.array(base, dtype=float)
    merged[resolve_species(species)] = coerce_flow(value)
    return merged


def element_totals(vec: np.ndarray) -> Dict[str, float]:
    """Atom flows (kgatom/hr) for each element carried by the vector."""
    totals = {el: 0.0 for el in ELEMENTS}
    for s in Species:
        for el, count in ATOMS[s].items():
            totals[el] += count * float(vec[s])
    return totals
